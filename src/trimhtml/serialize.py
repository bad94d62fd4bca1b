"""HTML serialization for TrimHTML nodes.

Output follows the HTML fragment serialization algorithm (the same text a
browser returns from `outerHTML`), so parsing it again yields the same tree.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import RAWTEXT_ELEMENTS, VOID_ELEMENTS

if TYPE_CHECKING:
    from .node import Node


def _escape_text(text: str | None) -> str:
    if not text:
        return ""
    return str(text).replace("&", "&amp;").replace("\xa0", "&nbsp;").replace("<", "&lt;").replace(">", "&gt;")


def _escape_attr_value(value: str | None) -> str:
    if value is None:
        return ""
    return str(value).replace("&", "&amp;").replace("\xa0", "&nbsp;").replace('"', "&quot;")


def serialize_start_tag(name: str, attrs: dict[str, str | None] | None) -> str:
    attrs = attrs or {}
    parts: list[str] = ["<", name]
    for key, value in attrs.items():
        parts.extend([" ", key, '="', _escape_attr_value(value), '"'])
    parts.append(">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    return f"</{name}>"


def _is_void(node: Node) -> bool:
    return node.namespace is None and node.tag_name in VOID_ELEMENTS


def _is_rawtext(node: Node | None) -> bool:
    return node is not None and node.namespace is None and node.tag_name in RAWTEXT_ELEMENTS


def to_html(node: Node) -> str:
    """Serialize `node` including its own tags (children only for a document)."""
    parts: list[str] = []
    # Work items are nodes to open, or closing-tag strings already rendered.
    stack: list[Node | str] = list(reversed(node.children)) if node.tag_name == "#document" else [node]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
            continue

        name = item.tag_name
        if name == "#text":
            parts.append(item.text_content if _is_rawtext(item.parent) else _escape_text(item.text_content))
            continue
        if name == "#comment":
            parts.append(f"<!--{item.text_content}-->")
            continue
        if name == "#document":
            stack.extend(reversed(item.children))
            continue

        parts.append(serialize_start_tag(name, item.attributes))
        if _is_void(item):
            continue
        stack.append(serialize_end_tag(name))
        stack.extend(reversed(item.children))
    return "".join(parts)


def inner_html(node: Node) -> str:
    """Serialize the children of `node`."""
    return "".join(to_html(child) for child in node.children)
