"""
Patch builders for the LBCF custom resources.

Each builder binds one resource snapshot, is driven by the admission handler
through its inspection methods in a fixed order, and returns the accumulated
patches from patch(). Every patch is computed against the original snapshot,
so the list is valid when the API server applies it in order.
"""

import logging
from datetime import timedelta
from typing import Iterable, Sequence

from kubernetes.utils.duration import format_duration

from .models import BackendGroupModel, LoadBalancerDriverModel, ObjectMetaModel
from .patches import (
    APPEND,
    OP_ADD,
    Patch,
    build_default_protocol_patch,
    build_finalizer_patch,
    build_label_patch,
    json_pointer,
)

log = logging.getLogger("lbcf-admission")

LABEL_LB_NAME = "lbcf.tkestack.io/lb-name"
DEFAULT_WEBHOOK_TIMEOUT = timedelta(seconds=10)


class PreconditionError(ValueError):
    """A required input is missing, so no patch can be computed safely."""


def _finalizer_patches(meta: ObjectMetaModel, finalizers: Iterable[str]) -> list[Patch]:
    present = set(meta.finalizers)
    exists = bool(meta.finalizers)
    patches = []
    for finalizer in finalizers:
        if not finalizer or finalizer in present:
            continue
        patches.append(build_finalizer_patch(exists, finalizer))
        present.add(finalizer)
        exists = True
    return patches


class BackendGroupPatch:
    def __init__(
        self, obj: BackendGroupModel, association_label: str = LABEL_LB_NAME
    ) -> None:
        if not obj.lb_name:
            raise PreconditionError(
                f"BackendGroup {obj.meta.namespace}/{obj.meta.name}: spec.lbName is required"
            )
        if not association_label:
            raise PreconditionError("association label key must not be empty")
        self._obj = obj
        self._label = association_label
        self._patches: list[Patch] = []

    def _append(self, patch: Patch) -> None:
        log.debug("BackendGroup %s: %s %s", self._obj.meta.name, patch.op, patch.path)
        self._patches.append(patch)

    def add_label(self) -> None:
        labels = self._obj.meta.labels
        want = self._obj.lb_name
        if not labels:
            self._append(build_label_patch(False, False, self._label, want))
            return

        if self._label not in labels:
            self._append(build_label_patch(True, False, self._label, want))
        elif labels[self._label] != want:
            self._append(build_label_patch(True, True, self._label, want))

    def set_default_protocol(self) -> None:
        # Only the first selector lacking a protocol is defaulted
        for scope, selector in self._obj.port_selectors():
            if not selector.protocol:
                self._append(build_default_protocol_patch(scope))
                return

    def add_finalizers(self, finalizers: Iterable[str]) -> None:
        for patch in _finalizer_patches(self._obj.meta, finalizers):
            self._append(patch)

    def patch(self) -> list[Patch]:
        return list(self._patches)


class DriverPatch:
    def __init__(
        self,
        obj: LoadBalancerDriverModel,
        known_webhooks: Sequence[str],
        default_timeout: timedelta = DEFAULT_WEBHOOK_TIMEOUT,
    ) -> None:
        if default_timeout <= timedelta(0):
            raise PreconditionError(
                f"default webhook timeout must be positive, got {default_timeout}"
            )
        self._obj = obj
        self._known = tuple(known_webhooks)
        self._timeout = format_duration(default_timeout)
        self._patches: list[Patch] = []

    def _append(self, patch: Patch) -> None:
        log.debug("LoadBalancerDriver %s: %s %s", self._obj.meta.name, patch.op, patch.path)
        self._patches.append(patch)

    def set_webhooks(self) -> None:
        if not self._obj.webhooks:
            self._append(Patch(OP_ADD, json_pointer("spec", "webhooks"), []))

        existing = {w.name for w in self._obj.webhooks}
        for known in self._known:
            if known in existing:
                continue
            existing.add(known)
            self._append(
                Patch(
                    OP_ADD,
                    json_pointer("spec", "webhooks", APPEND),
                    {"name": known, "timeout": self._timeout},
                )
            )

    def add_finalizers(self, finalizers: Iterable[str]) -> None:
        for patch in _finalizer_patches(self._obj.meta, finalizers):
            self._append(patch)

    def patch(self) -> list[Patch]:
        return list(self._patches)
