import base64
import json
import logging
from typing import Any

from .models import AdmissionRequestModel, BackendGroupModel, LoadBalancerDriverModel
from .mutate import BackendGroupPatch, DriverPatch
from .patches import Patch
from .store.interface import WebhookRegistry

log = logging.getLogger("lbcf-admission")

KIND_BACKEND_GROUP = "BackendGroup"
KIND_DRIVER = "LoadBalancerDriver"


def encode_patch(patches: list[Patch]) -> str:
    """Serialize patches into the base64 JSON body the API server expects."""
    raw = json.dumps([p.to_dict() for p in patches])
    return base64.b64encode(raw.encode()).decode()


def make_admission_response(
    uid: str,
    allowed: bool = True,
    patch: list[Patch] | None = None,
    message: str | None = None,
) -> dict[str, Any]:
    """Return the AdmissionReview the webhook sends to K8s to allow and optionally patch an object."""
    resp: dict[str, Any] = {"uid": uid, "allowed": allowed}

    if patch:
        resp["patchType"] = "JSONPatch"
        resp["patch"] = encode_patch(patch)

    if message:
        resp["status"] = {"code": 400, "message": message}

    return {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "response": resp,
    }


def patch_backend_group(obj: dict[str, Any], settings: Any) -> list[Patch]:
    """Label a BackendGroup with its load balancer and default its port protocol."""
    bg = BackendGroupModel.from_dict(obj)
    builder = BackendGroupPatch(bg, settings.association_label)
    builder.add_label()
    builder.set_default_protocol()
    builder.add_finalizers(settings.finalizers)
    return builder.patch()


def patch_driver(
    obj: dict[str, Any], settings: Any, registry: WebhookRegistry
) -> list[Patch]:
    """Declare every known webhook on a LoadBalancerDriver that is missing one."""
    driver = LoadBalancerDriverModel.from_dict(obj)
    builder = DriverPatch(
        driver, registry.names(), settings.webhook_default_timeout
    )
    builder.set_webhooks()
    builder.add_finalizers(settings.finalizers)
    return builder.patch()


def build_patches(
    req: AdmissionRequestModel, settings: Any, registry: WebhookRegistry
) -> list[Patch]:
    """Compute the patches for an admission request; kinds we don't own get none."""
    if req.operation == "DELETE":
        return []

    if req.kind == KIND_BACKEND_GROUP:
        return patch_backend_group(req.obj, settings)
    if req.kind == KIND_DRIVER:
        return patch_driver(req.obj, settings, registry)

    log.info("Ignoring kind=%s uid=%s", req.kind or "<unset>", req.uid)
    return []
