"""Parse markup into a TrimHTML `Node` tree.

html5lib runs the WHATWG parsing algorithm and builds a minidom document,
which is then copied into `Node` objects so the filtering passes can mutate it
freely. The copy is iterative so hostile nesting depth cannot hit the
recursion limit.
"""

from __future__ import annotations

from xml.dom import Node as DomNode

from .constants import NAMESPACE_URIS
from .environment import get_environment
from .node import Node


def _convert(source) -> Node | None:
    node_type = source.nodeType
    if node_type == DomNode.ELEMENT_NODE:
        namespace = NAMESPACE_URIS.get(source.namespaceURI, source.namespaceURI)
        return Node(source.tagName, dict(source.attributes.items()), namespace=namespace)
    if node_type == DomNode.TEXT_NODE:
        return Node("#text", text_content=source.data)
    if node_type == DomNode.COMMENT_NODE:
        return Node("#comment", text_content=source.data)
    # Doctypes and processing instructions never reach the output.
    return None


def parse_document(html: str | None) -> Node:
    """Parse a complete document. The result always has <html>, <head> and <body>."""
    parser = get_environment().new_parser()
    dom = parser.parse(html or "")

    document = Node("#document")
    stack = [(dom, document)]
    while stack:
        source, target = stack.pop()
        for child in source.childNodes:
            converted = _convert(child)
            if converted is None:
                continue
            target.append_child(converted)
            if child.nodeType == DomNode.ELEMENT_NODE:
                stack.append((child, converted))
    return document
