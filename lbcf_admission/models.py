"""
Minimal models for Kubernetes AdmissionReview and the LBCF custom resources
mutated by this webhook. We intentionally parse only the fields we need and
ignore unknowns so that new API fields don't break this app.

References:
- AdmissionReview request/response shape:
  https://kubernetes.io/docs/reference/access-authn-authz/extensible-admission-controllers/#request-and-response
- BackendGroup / LoadBalancerDriver (lbcf.tkestack.io/v1beta1):
  https://github.com/tkestack/lb-controlling-framework/tree/master/docs
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from .patches import ProtocolScope


def _get(d: dict[str, Any], key: str, default):
    # Safe nested getter for dicts
    v = d.get(key)
    return v if isinstance(v, type(default)) else default


@dataclass
class ObjectMetaModel:
    name: str
    namespace: str
    labels: dict[str, str]
    finalizers: list[str]

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ObjectMetaModel":
        meta = _get(d, "metadata", {})
        return ObjectMetaModel(
            name=_get(meta, "name", ""),
            namespace=_get(meta, "namespace", ""),
            labels=_get(meta, "labels", {}),
            finalizers=[f for f in _get(meta, "finalizers", []) if isinstance(f, str)],
        )


@dataclass
class PortSelectorModel:
    port_number: int | None
    protocol: str

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "PortSelectorModel":
        port = _get(d, "port", {})
        number = port.get("portNumber")
        return PortSelectorModel(
            port_number=number if isinstance(number, int) else None,
            protocol=_get(port, "protocol", ""),
        )


@dataclass
class BackendGroupModel:
    meta: ObjectMetaModel
    lb_name: str
    service: PortSelectorModel | None = None
    pods: PortSelectorModel | None = None

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "BackendGroupModel":
        spec = _get(d, "spec", {})
        svc_raw = spec.get("service")
        pods_raw = spec.get("pods")
        return BackendGroupModel(
            meta=ObjectMetaModel.from_dict(d),
            lb_name=_get(spec, "lbName", ""),
            service=PortSelectorModel.from_dict(svc_raw)
            if isinstance(svc_raw, dict)
            else None,
            pods=PortSelectorModel.from_dict(pods_raw)
            if isinstance(pods_raw, dict)
            else None,
        )

    def port_selectors(self) -> Iterator[tuple[ProtocolScope, PortSelectorModel]]:
        """Yield the populated port selectors, service-style before pod-style."""
        if self.service is not None:
            yield "service", self.service
        if self.pods is not None:
            yield "pods", self.pods


@dataclass
class WebhookConfigModel:
    name: str
    timeout: str = ""

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "WebhookConfigModel":
        return WebhookConfigModel(
            name=_get(d, "name", ""), timeout=_get(d, "timeout", "")
        )


@dataclass
class LoadBalancerDriverModel:
    meta: ObjectMetaModel
    driver_type: str = ""
    url: str = ""
    webhooks: list[WebhookConfigModel] = field(default_factory=list)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "LoadBalancerDriverModel":
        spec = _get(d, "spec", {})
        return LoadBalancerDriverModel(
            meta=ObjectMetaModel.from_dict(d),
            driver_type=_get(spec, "driverType", ""),
            url=_get(spec, "url", ""),
            webhooks=[
                WebhookConfigModel.from_dict(w)
                for w in _get(spec, "webhooks", [])
                if isinstance(w, dict)
            ],
        )


@dataclass
class AdmissionRequestModel:
    uid: str
    kind: str
    obj: dict[str, Any]
    operation: str = "CREATE"

    @staticmethod
    def from_dict(d: dict[str, Any]) -> Optional["AdmissionRequestModel"]:
        if not isinstance(d, dict):
            return None
        uid = str(d.get("uid", ""))
        op = str(d.get("operation", "CREATE"))
        obj_raw = d.get("object", {})
        if not isinstance(obj_raw, dict):
            obj_raw = {}
        # request.kind is authoritative; fall back to the object's own kind
        kind = _get(_get(d, "kind", {}), "kind", "") or _get(obj_raw, "kind", "")
        return AdmissionRequestModel(uid=uid, kind=kind, obj=obj_raw, operation=op)


@dataclass
class AdmissionReviewModel:
    request: AdmissionRequestModel

    @staticmethod
    def from_dict(d: dict[str, Any]) -> Optional["AdmissionReviewModel"]:
        if not isinstance(d, dict):
            return None
        req_raw = d.get("request")
        req = (
            AdmissionRequestModel.from_dict(req_raw)
            if isinstance(req_raw, dict)
            else None
        )
        if req is None:
            return None
        return AdmissionReviewModel(request=req)
