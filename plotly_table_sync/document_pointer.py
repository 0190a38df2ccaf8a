"""Structural references into a chart document.

Purpose
-------
A chart document is a nested tree of dicts (object nodes), lists (array
nodes) and scalars. Bindings declare their targets as JSON-pointer-like
strings such as ``"/plotly/data/0/x"``. This module turns such a string into
a :class:`DocumentSlot`, a writable handle on one field of the tree.

Concepts
--------
- Parsing drops empty segments and the leading root segment (``"plotly"``
  by default) and decodes the JSON-pointer escapes ``~1`` and ``~0``.
- Resolution walks object and array nodes only. A scalar in the middle of
  the path, an unknown key, or an out-of-range index yields ``None`` rather
  than raising; callers log and skip the write.

Examples
--------
>>> doc = {"data": [{"x": []}], "layout": {}}
>>> slot = resolve_slot(doc, "/plotly/data/0/x")
>>> slot.set([1, 2, 3])
>>> doc["data"][0]["x"]
[1, 2, 3]
>>> resolve_slot(doc, "/plotly/data/5/x") is None
True
"""

from __future__ import annotations

from collections.abc import MutableMapping, MutableSequence
from dataclasses import dataclass
from typing import Any, Optional, Union

DEFAULT_ROOT_SEGMENT = "plotly"

SlotKey = Union[str, int]


@dataclass(frozen=True)
class DocumentSlot:
    """Writable handle on a single field of a chart document.

    Parameters
    ----------
    container : MutableMapping or MutableSequence
        Object or array node owning the field.
    key : str or int
        Field name (object node) or index (array node).
    """

    container: Any
    key: SlotKey

    def get(self) -> Any:
        """Return the current value stored in the slot."""
        return self.container[self.key]

    def set(self, value: Any) -> None:
        """Overwrite the slot with ``value``."""
        self.container[self.key] = value


def _unescape(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def parse_pointer(path: str, *, root_segment: str = DEFAULT_ROOT_SEGMENT) -> tuple[str, ...]:
    """Split ``path`` into document segments.

    Empty segments are dropped, as is a leading ``root_segment``. Only the
    first segment is treated as the root so a trace field that happens to be
    named like the root is still addressable.
    """
    if not isinstance(path, str):
        raise TypeError(f"document pointer must be a str, got {type(path).__name__}")
    parts = [_unescape(part) for part in path.split("/") if part != ""]
    if parts and root_segment and parts[0] == root_segment:
        parts = parts[1:]
    return tuple(parts)


def _child(node: Any, segment: str) -> tuple[bool, Any]:
    """Return ``(found, child)`` for one step of the walk."""
    if isinstance(node, MutableMapping):
        if segment in node:
            return True, node[segment]
        return False, None
    if isinstance(node, MutableSequence) and not isinstance(node, (str, bytes)):
        index = _as_index(segment, len(node))
        if index is None:
            return False, None
        return True, node[index]
    return False, None


def _as_index(segment: str, length: int) -> Optional[int]:
    if not segment.isdigit():
        return None
    index = int(segment)
    if index >= length:
        return None
    return index


def resolve_segments(document: Any, segments: tuple[str, ...]) -> Optional[DocumentSlot]:
    """Resolve already-parsed ``segments`` against ``document``.

    Returns
    -------
    DocumentSlot or None
        ``None`` when the path is empty or does not resolve.
    """
    if not segments:
        return None
    node = document
    for segment in segments[:-1]:
        found, node = _child(node, segment)
        if not found:
            return None

    last = segments[-1]
    if isinstance(node, MutableMapping):
        # Object nodes accept a missing leaf; Plotly omits unset data fields.
        return DocumentSlot(node, last)
    if isinstance(node, MutableSequence) and not isinstance(node, (str, bytes)):
        index = _as_index(last, len(node))
        if index is None:
            return None
        return DocumentSlot(node, index)
    return None


def resolve_slot(
    document: Any,
    path: str,
    *,
    root_segment: str = DEFAULT_ROOT_SEGMENT,
) -> Optional[DocumentSlot]:
    """Resolve a structural reference string against ``document``.

    Parameters
    ----------
    document : Any
        Document root, normally ``{"data": [...], "layout": {...}}``.
    path : str
        Structural reference such as ``"/plotly/data/0/x"``.
    root_segment : str, optional
        Leading segment naming the document root; stripped before walking.

    Returns
    -------
    DocumentSlot or None
        A writable slot, or ``None`` if any intermediate segment does not
        resolve to an object or array node.
    """
    return resolve_segments(document, parse_pointer(path, root_segment=root_segment))


__all__ = [
    "DEFAULT_ROOT_SEGMENT",
    "DocumentSlot",
    "parse_pointer",
    "resolve_segments",
    "resolve_slot",
]
