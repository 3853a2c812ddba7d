"""
app/forms/form_state.py

Immutable, path-addressable wizard form state.

The wizard keeps one nested record tree for all of its steps.  Cards read
their slice by path and emit partial updates; every update produces a new
tree.  Branches that an update does not touch are shared between the old
and the new tree, so snapshots taken before an update stay valid.

Paths
-----
Dotted strings (``"social.movement.headcount_end"``) or sequences of
segments.  Integer segments (or all-digit string segments) index lists:
``"governance.governance_body.directors.0.meetings_held"``.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

Path = Union[str, Sequence[Union[str, int]]]

_MISSING = object()


class FormPathError(KeyError):
    """
    Raised when a path cannot be written: a list index past the end, or a
    segment that descends into a scalar value.
    """


def split_path(path: Path) -> tuple[str | int, ...]:
    """
    Normalise a dotted path or a segment sequence into a tuple.

    All-digit string segments become list indices.
    """
    if isinstance(path, str):
        raw: Sequence[str | int] = [part for part in path.split(".") if part]
    else:
        raw = list(path)
    segments: list[str | int] = []
    for part in raw:
        if isinstance(part, str) and part.isdigit():
            segments.append(int(part))
        else:
            segments.append(part)
    return tuple(segments)


@dataclass(frozen=True)
class FormState:
    """
    Snapshot of the wizard form tree.

    Never mutate :attr:`values` directly; use :meth:`patch` or :meth:`merge`.
    """

    values: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "FormState":
        return cls(values=copy.deepcopy(dict(data or {})))

    def get(self, path: Path, default: Any = None) -> Any:
        """
        Read the value at *path*, or *default* when any segment is absent.
        """
        node: Any = self.values
        for segment in split_path(path):
            node = _child(node, segment)
            if node is _MISSING:
                return default
        return node

    def section(self, path: Path) -> dict[str, Any]:
        """
        Read a mapping-valued subtree as a plain dict (empty when absent).
        """
        value = self.get(path)
        return dict(value) if isinstance(value, Mapping) else {}

    def patch(self, path: Path, value: Any) -> "FormState":
        """
        Return a new state with *value* written at *path*.

        Missing intermediate mappings are created.  Only the containers on
        the path are copied.
        """
        segments = split_path(path)
        if not segments:
            if not isinstance(value, Mapping):
                raise FormPathError("Root value must be a mapping.")
            return FormState(values=dict(value))
        return FormState(values=_assoc(self.values, segments, value, 0))

    def merge(self, partial: Mapping[str, Any], path: Path = "") -> "FormState":
        """
        Return a new state with *partial* deep-merged at *path*.

        Nested mappings merge key by key; any other value (lists included)
        replaces the existing one.  This is how a card's partial
        ``on_change`` update is folded into the wizard tree.
        """
        current = self.get(path) if split_path(path) else self.values
        merged = _deep_merge(current if isinstance(current, Mapping) else {}, partial)
        return self.patch(path, merged)

    def to_dict(self) -> dict[str, Any]:
        """Deep copy of the tree, safe for the caller to mutate."""
        return copy.deepcopy(dict(self.values))


def _mapping_key(node: Mapping[str, Any], segment: str | int) -> str | int:
    if segment in node or not isinstance(segment, int):
        return segment
    return str(segment)


def _child(node: Any, segment: str | int) -> Any:
    if isinstance(node, Mapping):
        return node.get(_mapping_key(node, segment), _MISSING)
    if isinstance(node, (list, tuple)) and isinstance(segment, int):
        if -len(node) <= segment < len(node):
            return node[segment]
    return _MISSING


def _assoc(node: Any, segments: tuple[str | int, ...], value: Any, depth: int) -> Any:
    segment = segments[depth]
    last = depth == len(segments) - 1

    if isinstance(node, (list, tuple)):
        if not isinstance(segment, int):
            raise FormPathError(f"List at {_render(segments[:depth])!r} needs an integer index.")
        items = list(node)
        if segment == len(items):
            items.append(_MISSING)
        elif not -len(items) <= segment < len(items):
            raise FormPathError(
                f"Index {segment} out of range at {_render(segments[:depth])!r} "
                f"(length {len(items)})."
            )
        existing = items[segment]
        items[segment] = value if last else _assoc(
            {} if existing is _MISSING else existing, segments, value, depth + 1
        )
        return items

    if node is None:
        node = {}
    if not isinstance(node, Mapping):
        raise FormPathError(
            f"Cannot descend into scalar at {_render(segments[:depth])!r}."
        )

    key = _mapping_key(node, segment)
    updated = dict(node)
    if last:
        updated[key] = value
    else:
        updated[key] = _assoc(node.get(key), segments, value, depth + 1)
    return updated


def _deep_merge(base: Mapping[str, Any], partial: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in partial.items():
        existing = merged.get(key)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            merged[key] = _deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def _render(segments: Sequence[str | int]) -> str:
    return ".".join(str(segment) for segment in segments) or "<root>"
