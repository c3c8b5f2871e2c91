"""Expression evaluation for schema templates.

Provides dotted-path lookup, ``{...}`` text interpolation with a restricted
arithmetic sub-language, condition evaluation, and computed style values.

Nothing here raises on bad input: missing paths render as empty text,
malformed or non-finite arithmetic renders as ``"NaN"``.
"""

from __future__ import annotations

import ast
import json
import logging
import math
import re
from collections.abc import Mapping
from typing import Any

from schemaflow.specs.node import (
    ITEM_MARKER,
    ConditionalStyle,
    ConditionSpec,
    PercentageStyle,
    StyleValue,
)

logger = logging.getLogger(__name__)

# ``${expr}`` or ``{expr}``
PLACEHOLDER_RE = re.compile(r"\$?\{([^}]+)\}")

# A placeholder containing any of these is evaluated as arithmetic
_OPERATOR_RE = re.compile(r"[+\-*/%()]")

# Data paths inside arithmetic: ``$item.x``, ``btc_ticker.raw.last``, ``rows[0].size``
_IDENTIFIER_RE = re.compile(
    r"(?<![\w.$])"
    r"(\$item(?:\.[A-Za-z0-9_]+|\[[0-9]+\])*"
    r"|[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+|\[[0-9]+\])*)"
)

# JavaScript-style parseFloat: longest numeric prefix
_LEADING_FLOAT_RE = re.compile(r"\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")

NAN_TEXT = "NaN"


# =============================================================================
# Path lookup
# =============================================================================


def get_value(root: Any, path: str) -> Any:
    """Resolve a dotted path like ``trades.raw.0.price`` against a value.

    Integer segments index into lists. Any missing link yields ``None``.
    An empty path returns ``root`` itself.
    """
    if not path:
        return root
    current = root
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, list | tuple):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return None
            continue
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return None
    return current


def _normalize_path(path: str) -> str:
    """Turn ``a[0].b`` into ``a.0.b``."""
    return path.replace("[", ".").replace("]", "")


def lookup(path: str, data: Any, item: Any = None) -> Any:
    """Look up a path against ``data``, or against ``item`` when prefixed with ``$item``."""
    path = path.strip()
    if path.startswith(ITEM_MARKER):
        relative = _normalize_path(path[len(ITEM_MARKER) :])
        return get_value(item, relative.lstrip("."))
    return get_value(data, _normalize_path(path))


# =============================================================================
# Coercion
# =============================================================================


def to_number(value: Any) -> float:
    """Coerce a value to a float the way a loose comparison would.

    ``None``, containers and non-numeric strings become NaN; booleans are
    0/1; blank strings are 0.
    """
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if "_" in text:
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def parse_leading_float(text: str) -> float:
    """Parse the longest numeric prefix of ``text`` (NaN if there is none)."""
    match = _LEADING_FLOAT_RE.match(text)
    if not match:
        return math.nan
    return float(match.group(1).replace("Infinity", "inf"))


def number_to_string(value: float) -> str:
    """Render a number without a trailing ``.0`` for integral values."""
    if math.isnan(value):
        return NAN_TEXT
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def to_display_string(value: Any) -> str:
    """Stringify a looked-up value for text output."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return number_to_string(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list | tuple):
        return ",".join(to_display_string(v) for v in value)
    if isinstance(value, Mapping):
        return json.dumps(value, default=str, separators=(",", ":"))
    return str(value)


# =============================================================================
# Arithmetic
# =============================================================================


class _ArithmeticError(ValueError):
    """Expression uses something outside the arithmetic sub-language."""


def _binary(op: ast.operator, left: float, right: float) -> float:
    match op:
        case ast.Add():
            return left + right
        case ast.Sub():
            return left - right
        case ast.Mult():
            return left * right
        case ast.Div():
            if right == 0:
                if left == 0 or math.isnan(left):
                    return math.nan
                return math.copysign(math.inf, left) * math.copysign(1.0, right)
            return left / right
        case ast.Mod():
            if right == 0:
                return math.nan
            return math.fmod(left, right)
        case _:
            raise _ArithmeticError(f"Unsupported operator: {type(op).__name__}")


def _evaluate_node(node: ast.AST, operands: dict[str, float]) -> float:
    match node:
        case ast.Constant(value=value) if isinstance(value, int | float) and not isinstance(
            value, bool
        ):
            return float(value)
        case ast.Name(id=name) if name in operands:
            return operands[name]
        case ast.BinOp(left=left, op=op, right=right):
            return _binary(op, _evaluate_node(left, operands), _evaluate_node(right, operands))
        case ast.UnaryOp(op=ast.USub(), operand=operand):
            return -_evaluate_node(operand, operands)
        case ast.UnaryOp(op=ast.UAdd(), operand=operand):
            return _evaluate_node(operand, operands)
        case _:
            raise _ArithmeticError(f"Unsupported expression element: {type(node).__name__}")


def evaluate_arithmetic(expression: str, data: Any, item: Any = None) -> float:
    """Evaluate an arithmetic expression over looked-up values.

    Every data path in the expression is replaced by its value (missing
    values count as 0), then the result is computed with ``+ - * / %``,
    unary signs and parentheses only.

    Raises:
        ValueError: If the expression is malformed or uses anything else.
    """
    operands: dict[str, float] = {}

    def substitute(match: re.Match[str]) -> str:
        name = f"_v{len(operands)}"
        value = lookup(match.group(0), data, item)
        operands[name] = 0.0 if value is None else to_number(value)
        return name

    rewritten = _IDENTIFIER_RE.sub(substitute, expression).strip()
    if not rewritten:
        raise _ArithmeticError("Empty expression")
    try:
        tree = ast.parse(rewritten, mode="eval")
    except SyntaxError as exc:
        raise _ArithmeticError(f"Malformed expression: {expression}") from exc
    return _evaluate_node(tree.body, operands)


def render_arithmetic(expression: str, data: Any, item: Any = None) -> str:
    """Evaluate an arithmetic placeholder to text; failures render ``"NaN"``."""
    try:
        result = evaluate_arithmetic(expression, data, item)
    except (ValueError, RecursionError) as exc:
        logger.debug("Arithmetic evaluation failed for %r: %s", expression, exc)
        return NAN_TEXT
    if not math.isfinite(result):
        return NAN_TEXT
    return number_to_string(result)


# =============================================================================
# Interpolation
# =============================================================================


def render_placeholder(expression: str, data: Any, item: Any = None) -> str:
    """Render the inside of one ``{...}`` placeholder."""
    if _OPERATOR_RE.search(expression):
        return render_arithmetic(expression, data, item)
    return to_display_string(lookup(expression, data, item))


def interpolate(template: str, data: Any, item: Any = None) -> str:
    """Replace every ``${...}`` / ``{...}`` placeholder in ``template``.

    Example:
        >>> interpolate("${a+b}", {"a": 2, "b": 3})
        '5'
        >>> interpolate("Last: {btc.raw.last}", {"btc": {"raw": {"last": 64000.5}}})
        'Last: 64000.5'
    """
    return PLACEHOLDER_RE.sub(lambda m: render_placeholder(m.group(1), data, item), template)


# =============================================================================
# Conditions
# =============================================================================


def strict_equals(left: Any, right: Any) -> bool:
    """Type-aware equality: ``1`` does not equal ``True``, containers compare by identity."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, int | float) and isinstance(right, int | float):
        return left == right
    if left is None or right is None:
        return left is right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return left is right


def evaluate_condition(condition: ConditionSpec, data: Any, item: Any = None) -> bool:
    """Evaluate a node or style condition.

    ``===`` is strict equality; the ordering operators coerce both sides to
    numbers, so a missing or non-numeric side makes them false.
    """
    value = lookup(condition.key, data, item)

    match condition.operator:
        case "===":
            return strict_equals(value, condition.value)
        case ">":
            return to_number(value) > to_number(condition.value)
        case "<":
            return to_number(value) < to_number(condition.value)
        case ">=":
            return to_number(value) >= to_number(condition.value)
        case "<=":
            return to_number(value) <= to_number(condition.value)
        case _:
            return False


# =============================================================================
# Computed styles
# =============================================================================


def resolve_percentage(style: PercentageStyle, data: Any, item: Any = None) -> str:
    """Compute ``value / max`` as a percentage string, ``"0%"`` when undefined."""
    value = parse_leading_float(interpolate(style.value, data, item))
    maximum = parse_leading_float(interpolate(style.max, data, item))
    if math.isnan(value) or math.isnan(maximum) or maximum <= 0:
        return "0%"
    return f"{value / maximum * 100:.2f}%"


def resolve_style_value(value: StyleValue, data: Any, item: Any = None) -> Any:
    match value:
        case ConditionalStyle():
            return value.when_true if evaluate_condition(value.condition, data, item) else value.when_false
        case PercentageStyle():
            return resolve_percentage(value, data, item)
        case _:
            return value


def resolve_style(style: Mapping[str, StyleValue], data: Any, item: Any = None) -> dict[str, Any]:
    """Resolve conditional and computed entries of a style map."""
    return {key: resolve_style_value(value, data, item) for key, value in style.items()}
