"""Immutable document tree built from a stream of XML events.

:class:`DocumentBuilder` drains an event sequence (normally an
:class:`~rru.events.EventReader`) and returns the root :class:`DocumentNode`.
Nodes are frozen: each one is assembled in a private frame while its body is
being read and only turned into a ``DocumentNode`` once its close event
arrives, so callers never see a partially built subtree.

Two simplifications are deliberate and relied upon by the metadata jobs:

* a node's ``value`` is the *last* text fragment seen directly inside it;
  several fragments are not concatenated;
* in the default (non-strict) mode a close event always closes the innermost
  open element, whatever name it carries.

Example:
>>> root = parse('<files><file name="a.mp3"><format>VBR MP3</format></file></files>')
>>> root.get_child("file").get_child("format").value
'VBR MP3'
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import zip_longest
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple

from .errors import (
    DepthLimitError,
    MetadataError,
    MismatchedCloseError,
    MissingRootError,
    TruncatedDocumentError,
    UnexpectedEventError,
)
from .events import EventKind, EventReader, ReaderConfig, XmlEvent

__all__ = [
    "DocumentNode",
    "DocumentBuilder",
    "parse",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, repr=False, eq=False)
class DocumentNode:
    """One element: tag name, optional text, attributes and ordered children.

    Equality and hashing are structural and, like the builder, walk the
    subtree with an explicit stack, so arbitrarily deep trees compare fine.
    """

    name: str
    value: Optional[str] = None
    attributes: Mapping[str, str] = field(default_factory=dict)
    children: Tuple["DocumentNode", ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("element name must not be empty")
        # freeze the containers as well, not just the attribute bindings
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "children", tuple(self.children))

    def __repr__(self) -> str:
        return f"<DocumentNode {self.name} attrs={len(self.attributes)} children={len(self.children)}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocumentNode):
            return NotImplemented
        if self is other:
            return True
        missing = object()
        for mine, theirs in zip_longest(self._walk(), other._walk(), fillvalue=missing):
            if mine != theirs:
                return False
        return True

    def __hash__(self) -> int:
        return hash(tuple(self._walk()))

    def _walk(self) -> Iterator[Tuple[str, Optional[str], FrozenSet[Tuple[str, str]], int]]:
        # pre-order with child counts identifies the tree shape
        stack = [self]
        while stack:
            node = stack.pop()
            yield node.name, node.value, frozenset(node.attributes.items()), len(node.children)
            stack.extend(reversed(node.children))

    # ---------------------------------------------------------------------
    # Queries
    # ---------------------------------------------------------------------

    def get_attrib(self, key: str) -> Optional[str]:
        return self.attributes.get(key)

    def get_child(self, name: str) -> Optional["DocumentNode"]:
        """Return the first direct child called *name*, or ``None``."""
        for child in self.children:
            if child.name == name:
                return child
        return None

    def iter_children(self, name: str) -> Iterator["DocumentNode"]:
        """Yield every direct child called *name* in document order."""
        return (child for child in self.children if child.name == name)

    def require_child(self, name: str) -> "DocumentNode":
        child = self.get_child(name)
        if child is None:
            raise MetadataError(f"expected <{name}> inside <{self.name}>, found none")
        return child

    def require_attrib(self, key: str) -> str:
        value = self.get_attrib(key)
        if value is None:
            raise MetadataError(f"expected attribute '{key}' on <{self.name}>, found none")
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict of the subtree, for dumping and debugging."""
        root: Dict[str, Any] = {}
        stack = [(self, root)]
        while stack:
            node, out = stack.pop()
            out["name"] = node.name
            out["value"] = node.value
            out["attributes"] = dict(node.attributes)
            out["children"] = [{} for _ in node.children]
            stack.extend(zip(node.children, out["children"]))
        return root


@dataclass
class _Frame:
    """An element whose close event has not arrived yet."""

    name: str
    attributes: Mapping[str, str]
    value: Optional[str] = None
    children: List[DocumentNode] = field(default_factory=list)

    def close(self) -> DocumentNode:
        return DocumentNode(self.name, self.value, self.attributes, tuple(self.children))


class DocumentBuilder:
    """Build a :class:`DocumentNode` tree from XML events.

    Parameters
    ----------
    strict: bool, default ``False``
        Verify that every close event names the element it closes.  The
        default trusts the event source to deliver balanced closes.
    max_depth: int | None
        Maximum element nesting; ``None`` means unlimited.  Open elements are
        kept on an explicit stack, so deep documents never hit the
        interpreter's recursion limit.
    """

    def __init__(self, *, strict: bool = False, max_depth: int | None = None) -> None:
        if max_depth is not None and max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.strict = strict
        self.max_depth = max_depth

    def build(self, events: Iterable[XmlEvent]) -> DocumentNode:
        stream = iter(events)
        stack: List[_Frame] = [self._open(self._read_root(stream), depth=1)]
        count = 1

        for event in stream:
            kind = event.kind
            if kind is EventKind.START_ELEMENT:
                stack.append(self._open(event, depth=len(stack) + 1))
                count += 1
            elif kind is EventKind.CHARACTERS:
                stack[-1].value = event.data  # last fragment wins
            elif kind is EventKind.END_ELEMENT:
                frame = stack.pop()
                if self.strict and event.name != frame.name:
                    raise MismatchedCloseError(frame.name, event.name or "")
                node = frame.close()
                if stack:
                    stack[-1].children.append(node)
                    continue
                self._drain(stream)
                logger.debug("Parsed <%s> with %d element(s)", node.name, count)
                return node
            else:
                raise UnexpectedEventError(event, f"inside <{stack[-1].name}>")

        raise TruncatedDocumentError(
            f"event stream ended with {len(stack)} open element(s), innermost <{stack[-1].name}>"
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_root(stream: Iterator[XmlEvent]) -> XmlEvent:
        for event in stream:
            if event.kind is EventKind.START_DOCUMENT:
                continue
            if event.kind is EventKind.START_ELEMENT:
                return event
            if event.kind is EventKind.END_DOCUMENT:
                break
            raise UnexpectedEventError(event, "before the root element")
        raise MissingRootError("no root element found")

    def _open(self, event: XmlEvent, depth: int) -> _Frame:
        if self.max_depth is not None and depth > self.max_depth:
            raise DepthLimitError(
                f"<{event.name}> exceeds the maximum nesting depth of {self.max_depth}"
            )
        return _Frame(event.name, event.attributes)

    @staticmethod
    def _drain(stream: Iterator[XmlEvent]) -> None:
        # trailing events are ignored, but tokenizer errors past the root must still surface
        for _ in stream:
            pass


def parse(
    text: str,
    *,
    config: ReaderConfig | None = None,
    strict: bool = False,
    max_depth: int | None = None,
) -> DocumentNode:
    """Tokenize *text* and return its root :class:`DocumentNode`.

    Raises a :class:`~rru.errors.ParseError` subclass on any failure; no
    partial tree is ever returned.
    """
    builder = DocumentBuilder(strict=strict, max_depth=max_depth)
    return builder.build(EventReader(text, config))
