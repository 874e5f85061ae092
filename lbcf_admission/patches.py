"""
JSON Patch (RFC 6902) primitives used by the admission mutator.

Paths are always built through json_pointer(), which escapes every segment
with the RFC 6901 rules, so no caller can emit an unescaped path.
"""

from dataclasses import dataclass
from typing import Any, Literal

from jsonpointer import JsonPointer, escape

PatchOp = Literal["add", "replace"]
ProtocolScope = Literal["service", "pods"]

OP_ADD: PatchOp = "add"
OP_REPLACE: PatchOp = "replace"

DEFAULT_PROTOCOL = "TCP"

# Array pointer token addressing the position after the last element
APPEND = "-"


@dataclass(frozen=True)
class Patch:
    op: PatchOp
    path: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.op, "path": self.path, "value": self.value}


def escape_segment(segment: str) -> str:
    """Escape one reference token: '~' becomes '~0', then '/' becomes '~1'."""
    return escape(str(segment))


def json_pointer(*segments: str) -> str:
    return JsonPointer.from_parts(list(segments)).path


def build_label_patch(
    labels_exist: bool, needs_replace: bool, key: str, value: str
) -> Patch:
    """
    Set one label.

    When labels_exist is False the whole labels map is created with a single
    entry; callers must only do that when the object carries no labels at all.
    """
    if not labels_exist:
        return Patch(OP_ADD, json_pointer("metadata", "labels"), {key: value})

    op = OP_REPLACE if needs_replace else OP_ADD
    return Patch(op, json_pointer("metadata", "labels", key), value)


def build_finalizer_patch(finalizers_exist: bool, finalizer: str) -> Patch:
    # No duplicate check here; callers skip finalizers already present
    if not finalizers_exist:
        return Patch(OP_ADD, json_pointer("metadata", "finalizers"), [finalizer])
    return Patch(OP_ADD, json_pointer("metadata", "finalizers", APPEND), finalizer)


def build_default_protocol_patch(scope: ProtocolScope) -> Patch:
    if scope not in ("service", "pods"):
        raise ValueError(f"Unknown port scope: {scope!r}")
    return Patch(
        OP_ADD, json_pointer("spec", scope, "port", "protocol"), DEFAULT_PROTOCOL
    )
