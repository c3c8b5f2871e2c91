"""
HTML serialization of rendered output trees.

Used by the CLI and for inspecting renders; handlers are dropped.
"""

from __future__ import annotations

import re
from typing import Any

from markupsafe import Markup, escape

from schemaflow.runtime.renderer import OutputNode, RenderResult
from schemaflow.specs.node import VOID_ELEMENTS

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# CSS properties that take unitless numbers
_UNITLESS = frozenset({"opacity", "zIndex", "fontWeight", "lineHeight", "flex", "flexGrow", "flexShrink", "order"})


def css_property(name: str) -> str:
    """``backgroundColor`` -> ``background-color``."""
    return _CAMEL_BOUNDARY.sub("-", name).lower()


def css_value(name: str, value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float) and name not in _UNITLESS and value != 0:
        return f"{value:g}px"
    return str(value)


def style_attribute(style: dict[str, Any]) -> str:
    return "; ".join(
        f"{css_property(name)}: {css_value(name, value)}"
        for name, value in style.items()
        if value is not None and not isinstance(value, dict | list)
    )


def _attributes(node: OutputNode) -> str:
    parts: list[str] = []
    if node.class_name:
        parts.append(f' class="{escape(node.class_name)}"')
    if node.style:
        declarations = style_attribute(node.style)
        if declarations:
            parts.append(f' style="{escape(declarations)}"')
    for name, value in node.attributes.items():
        parts.append(f' {name}="{escape(value)}"')
    return "".join(parts)


def _serialize(node: OutputNode) -> str:
    attributes = _attributes(node)
    if node.tag.lower() in VOID_ELEMENTS:
        return f"<{node.tag}{attributes} />"
    inner = str(escape(node.text)) if node.text is not None else ""
    inner += "".join(_serialize(child) for child in node.children)
    return f"<{node.tag}{attributes}>{inner}</{node.tag}>"


def to_html(output: RenderResult) -> Markup:
    """
    Serialize a render result to HTML.

    Text and attribute values are escaped; a gated-off result serializes to
    an empty string and an iterated result to its concatenated elements.

    Example:
        to_html(OutputNode(tag="span", text="<b>"))  # '<span>&lt;b&gt;</span>'
    """
    if output is None:
        return Markup("")
    if isinstance(output, list):
        return Markup("".join(_serialize(node) for node in output))
    return Markup(_serialize(output))
