"""
Node specification types for schema documents.

A schema is a tree of ``UINode`` objects. Field names follow the schema
document format (``className``, ``schemaRef``...), with snake_case Python
names available as well.
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
)

from schemaflow.errors import SchemaValidationError
from schemaflow.specs.actions import Action

# =============================================================================
# Element kinds
# =============================================================================

# Elements that never receive children or text content
VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    }
)

# Prefix that makes a key, path or identifier resolve against the iteration item
ITEM_MARKER = "$item"


# =============================================================================
# Control constructs
# =============================================================================


class FormatKind(str, Enum):
    """Value format kinds."""

    NUMBER = "number"
    VOLUME = "volume"
    DATETIME = "datetime"
    TIME = "time"


class FormatSpec(BaseModel):
    """
    Format applied to every interpolated placeholder of a node's text.

    Example:
        FormatSpec(type=FormatKind.VOLUME, decimals=2, prefix="$")
    """

    model_config = ConfigDict(frozen=True)

    type: FormatKind = Field(description="Format kind")
    decimals: int | None = Field(default=None, description="Fixed decimal places")
    prefix: str | None = Field(default=None, description="Text prepended to the result")
    suffix: str | None = Field(default=None, description="Text appended to the result")


ConditionOperator = Literal["===", ">", "<", ">=", "<="]


class ConditionSpec(BaseModel):
    """
    Condition gating a node or selecting a style branch.

    Example:
        ConditionSpec(key="active", operator="===", value=True)
        ConditionSpec(key="$item.change", operator=">", value=0)
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Data path; '$item' prefix reads the iteration item")
    operator: ConditionOperator = Field(default="===", description="Comparison operator")
    value: Any = Field(default=None, description="Literal compared against")


class IterateSpec(BaseModel):
    """
    Iteration spec: render the node once per element of an array.

    Example:
        IterateSpec(source="trades.raw", limit=20, reverse=True)
    """

    model_config = ConfigDict(frozen=True)

    source: str = Field(description="Data path of the array")
    limit: int | None = Field(default=None, description="Maximum elements (falsy: all)")
    reverse: bool = Field(default=False, description="Reverse the clipped elements")


# =============================================================================
# Computed style values
# =============================================================================


class ConditionalStyle(BaseModel):
    """
    Style value chosen by a condition.

    Example:
        {"condition": {"key": "change", "operator": ">", "value": 0},
         "true": "#22c55e", "false": "#ef4444"}
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    condition: ConditionSpec
    when_true: Any = Field(alias="true")
    when_false: Any = Field(alias="false")


class PercentageStyle(BaseModel):
    """
    Style value computed as ``value / max`` rendered as a percentage.

    Both operands are interpolation templates.

    Example:
        {"calculate": "percentage", "value": "{$item.size}", "max": "{book.maxSize}"}
    """

    model_config = ConfigDict(frozen=True)

    calculate: Literal["percentage"] = "percentage"
    value: str = Field(description="Numerator template")
    max: str = Field(description="Denominator template")


# Computed descriptors first, then opaque pass-through values
StyleValue = Annotated[
    ConditionalStyle
    | PercentageStyle
    | StrictStr
    | StrictBool
    | StrictInt
    | StrictFloat
    | None
    | dict[str, Any]
    | list[Any],
    Field(union_mode="left_to_right"),
]


# =============================================================================
# Events
# =============================================================================


class EventKind(str, Enum):
    """Interaction kinds a node can bind actions to."""

    CLICK = "onClick"
    DOUBLE_CLICK = "onDoubleClick"
    MOUSE_ENTER = "onMouseEnter"
    MOUSE_LEAVE = "onMouseLeave"


class EventBindings(BaseModel):
    """Map from interaction kind to the action it dispatches."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    on_click: Action | None = Field(default=None, alias="onClick")
    on_double_click: Action | None = Field(default=None, alias="onDoubleClick")
    on_mouse_enter: Action | None = Field(default=None, alias="onMouseEnter")
    on_mouse_leave: Action | None = Field(default=None, alias="onMouseLeave")

    def bound(self) -> list[tuple[EventKind, Action]]:
        """Return declared bindings in a stable order."""
        pairs = [
            (EventKind.CLICK, self.on_click),
            (EventKind.DOUBLE_CLICK, self.on_double_click),
            (EventKind.MOUSE_ENTER, self.on_mouse_enter),
            (EventKind.MOUSE_LEAVE, self.on_mouse_leave),
        ]
        return [(kind, action) for kind, action in pairs if action is not None]


# =============================================================================
# Nodes
# =============================================================================


class UINode(BaseModel):
    """
    Schema tree node.

    Example:
        UINode.model_validate({
            "type": "div",
            "className": "flex gap-2",
            "children": [
                {"type": "span", "text": "{btc.raw.last}", "format": {"type": "number", "decimals": 2}},
                {"schemaRef": "widget.tickers.live", "selfChannel": "testnet.runtime.ticker.BTC/USDT.bybit.spot"},
            ],
        })
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    type: str = Field(default="div", description="Element kind")
    class_name: str | None = Field(default=None, alias="className", description="Class names")
    style: dict[str, StyleValue] | None = Field(default=None, description="Inline style map")
    children: list["UINode"] | None = Field(default=None, description="Child nodes")
    text: str | None = Field(default=None, description="Text template")
    src: str | None = Field(default=None, description="Image source template")
    alt: str | None = Field(default=None, description="Image alt template")
    format: FormatSpec | None = Field(default=None, description="Format for interpolated text")
    condition: ConditionSpec | None = Field(default=None, description="Render gate")
    iterate: IterateSpec | None = Field(default=None, description="Iteration spec")
    schema_ref: str | None = Field(
        default=None, alias="schemaRef", description="Widget key of a schema to splice in"
    )
    self_channel: str | None = Field(
        default=None, alias="selfChannel", description="Channel the spliced schema treats as 'self'"
    )
    events: EventBindings | None = Field(default=None, description="Event bindings")
    refresh_interval: int | None = Field(
        default=None, alias="refreshInterval", description="Refresh hint in milliseconds"
    )

    @property
    def is_void(self) -> bool:
        """Check if this node is a void element."""
        return self.type.lower() in VOID_ELEMENTS

    @property
    def has_reference(self) -> bool:
        return bool(self.schema_ref)

    def as_document(self) -> dict[str, Any]:
        """Dump the node tree using document field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


UINode.model_rebuild()


def parse_ui_node(document: Any, source: str = "<document>") -> UINode:
    """
    Validate a schema document into a node tree.

    Raises:
        SchemaValidationError: If the document does not match the node format.
    """
    try:
        return UINode.model_validate(document)
    except ValidationError as exc:
        raise SchemaValidationError(source, exc) from exc
