"""Lightweight DOM tree built from BeautifulSoup output."""

from enum import Enum
from typing import Iterator, Optional, Union
from bs4 import BeautifulSoup, Doctype, NavigableString, Tag
from bs4.element import PreformattedString
from bs4.builder import ParserRejectedMarkup

from pagelens.errors import ParseError


class NodeKind(str, Enum):
    DOCUMENT = "document"
    DOCTYPE = "doctype"
    ELEMENT = "element"
    TEXT = "text"
    COMMENT = "comment"


class Node:
    """
    A node in the parsed document.

    ``data`` holds the tag name for elements, the declaration for doctypes
    and the raw string for text and comment-like markup. Attributes are
    kept as an ordered list of (key, value) pairs.
    """

    __slots__ = ("kind", "data", "attrs", "parent", "first_child", "last_child", "next_sibling")

    def __init__(
        self,
        kind: NodeKind,
        data: str = "",
        attrs: Optional[list[tuple[str, str]]] = None,
    ):
        self.kind = kind
        self.data = data
        self.attrs = attrs or []
        self.parent: Optional["Node"] = None
        self.first_child: Optional["Node"] = None
        self.last_child: Optional["Node"] = None
        self.next_sibling: Optional["Node"] = None

    def __repr__(self) -> str:
        return f"Node({self.kind.value}, {self.data!r})"

    def append_child(self, child: "Node") -> "Node":
        child.parent = self
        if self.last_child is None:
            self.first_child = child
        else:
            self.last_child.next_sibling = child
        self.last_child = child
        return child

    def children(self) -> Iterator["Node"]:
        child = self.first_child
        while child is not None:
            yield child
            child = child.next_sibling

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Value of the first attribute named key."""
        for attr_key, value in self.attrs:
            if attr_key == key:
                return value
        return default

    def is_element(self, *tags: str) -> bool:
        return self.kind == NodeKind.ELEMENT and (not tags or self.data in tags)

    def first_text(self) -> Optional[str]:
        """Data of the first child if that child is a text node."""
        child = self.first_child
        if child is not None and child.kind == NodeKind.TEXT:
            return child.data
        return None


def walk(root: Node, max_depth: Optional[int] = None) -> Iterator[tuple[Node, int]]:
    """
    Depth-first, document-order traversal yielding (node, depth).

    The root has depth 0. Nodes deeper than max_depth are neither yielded
    nor descended into.
    """
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        yield node, depth

        if max_depth is not None and depth + 1 > max_depth:
            continue
        children = list(node.children())
        for child in reversed(children):
            stack.append((child, depth + 1))


def _convert(element) -> Optional[Node]:
    if isinstance(element, Tag):
        attrs = []
        for key, value in element.attrs.items():
            if isinstance(value, (list, tuple)):
                value = " ".join(value)
            attrs.append((key, value or ""))
        return Node(NodeKind.ELEMENT, element.name, attrs)
    if isinstance(element, Doctype):
        return Node(NodeKind.DOCTYPE, str(element))
    if isinstance(element, PreformattedString):
        # comments, CDATA, processing instructions
        return Node(NodeKind.COMMENT, str(element))
    if isinstance(element, NavigableString):
        return Node(NodeKind.TEXT, str(element))
    return None


def parse_document(markup: Union[str, bytes]) -> Node:
    """
    Parse markup into a Node tree.

    Duplicate attributes keep their first value and class-like attributes
    stay plain strings.

    Raises:
        ParseError: If the parser rejects the markup
    """
    try:
        soup = BeautifulSoup(
            markup,
            "html.parser",
            multi_valued_attributes=None,
            on_duplicate_attribute="ignore",
        )
    except ParserRejectedMarkup as e:
        raise ParseError(f"failed to parse HTML: {e}") from e

    root = Node(NodeKind.DOCUMENT)
    stack = [(soup, root)]
    while stack:
        source, node = stack.pop()
        for child in source.children:
            converted = _convert(child)
            if converted is None:
                continue
            node.append_child(converted)
            if converted.kind == NodeKind.ELEMENT:
                stack.append((child, converted))

    return root
