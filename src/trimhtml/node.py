from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class Node:
    """Represents a DOM-like node.
    - tag_name: e.g., 'div', 'p', etc. Use '#text', '#comment' and '#document' for non-elements.
    - namespace: None for HTML, "svg" or "math" for foreign elements
    - attributes: dict of attributes in source order
    - children: list of child Nodes
    - parent: reference to parent Node (or None for detached nodes and the document)
    """

    __slots__ = (
        "attributes",
        "children",
        "namespace",
        "parent",
        "tag_name",
        "text_content",
    )

    def __init__(self, tag_name, attributes=None, text_content=None, namespace=None):
        if tag_name is None or tag_name == "":
            msg = "Empty tag_name passed to Node constructor"
            raise ValueError(msg)

        self.tag_name = tag_name
        self.namespace = namespace
        self.attributes = dict(attributes) if attributes else {}
        self.children = []
        self.parent = None
        # For text and comment nodes store inline text; for element nodes this is unused
        self.text_content = text_content if text_content is not None else ""

    @property
    def is_element(self):
        return not self.tag_name.startswith("#")

    @property
    def is_foreign(self):
        """Check if this is a foreign element (SVG or MathML)."""
        return self.namespace in ("svg", "math")

    @property
    def is_connected(self):
        """True while the node is still reachable from a document root."""
        current = self
        while current.parent is not None:
            current = current.parent
        return current.tag_name == "#document"

    @property
    def document_element(self):
        """The root element of a document node (normally <html>)."""
        for child in self.children:
            if child.is_element:
                return child
        return None

    def append_child(self, child):
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)

    def insert_before(self, new_node, reference_node):
        if reference_node not in self.children:
            return

        if new_node.parent is not None:
            new_node.parent.remove_child(new_node)

        idx = self.children.index(reference_node)
        new_node.parent = self
        self.children.insert(idx, new_node)

    def remove_child(self, child):
        """Remove a child node and clear its parent link.

        Args:
            child: The Node to remove

        """
        for i, existing in enumerate(self.children):
            if existing is child:
                del self.children[i]
                child.parent = None
                return

    def remove(self):
        """Detach this node (and its subtree) from its parent."""
        if self.parent is not None:
            self.parent.remove_child(self)

    def unwrap(self):
        """Replace this node with its children, keeping their order."""
        parent = self.parent
        if parent is None:
            return
        for child in list(self.children):
            parent.insert_before(child, self)
        parent.remove_child(self)

    def find_child_by_tag(self, tag_name):
        """Find first child with the given tag name.

        Args:
            tag_name: Tag name to search for
        Returns:
            First matching child or None if not found

        """
        for child in self.children:
            if child.tag_name == tag_name:
                return child
        return None

    def iter_elements(self) -> Iterator[Node]:
        """Yield this node (if an element) and all descendant elements in document order."""
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_element:
                yield node
            stack.extend(reversed(node.children))

    def get_text(self):
        """Concatenated data of the direct text children (the payload of style/script)."""
        return "".join(child.text_content for child in self.children if child.tag_name == "#text")

    def set_text(self, text):
        """Replace all children with a single text node."""
        for child in list(self.children):
            self.remove_child(child)
        if text:
            self.append_child(Node("#text", text_content=text))

    def __repr__(self):
        if self.tag_name == "#text":
            return f"Node(#text='{self.text_content[:30]}')"
        if self.tag_name == "#comment":
            return f"Node(#comment='{self.text_content[:30]}')"
        return f"Node(<{self.tag_name}>, children={len(self.children)})"
