import copy
import importlib
from datetime import timedelta
from typing import Any, Dict

import jsonpatch
import pytest


def import_mutate():
	return importlib.import_module("lbcf_admission.mutate")


def import_models():
	return importlib.import_module("lbcf_admission.models")


def backend_group(labels=None, lb_name="lb-1", service=None, pods=None, finalizers=None) -> Dict[str, Any]:
	meta: Dict[str, Any] = {"name": "bg", "namespace": "default"}
	if labels is not None:
		meta["labels"] = labels
	if finalizers is not None:
		meta["finalizers"] = finalizers
	spec: Dict[str, Any] = {"lbName": lb_name}
	if service is not None:
		spec["service"] = service
	if pods is not None:
		spec["pods"] = pods
	return {"apiVersion": "lbcf.tkestack.io/v1beta1", "kind": "BackendGroup", "metadata": meta, "spec": spec}


def driver(webhooks=None, finalizers=None) -> Dict[str, Any]:
	meta: Dict[str, Any] = {"name": "lbcf-test-driver", "namespace": "kube-system"}
	if finalizers is not None:
		meta["finalizers"] = finalizers
	spec: Dict[str, Any] = {"driverType": "Webhook", "url": "http://driver.kube-system:80"}
	if webhooks is not None:
		spec["webhooks"] = webhooks
	return {"apiVersion": "lbcf.tkestack.io/v1beta1", "kind": "LoadBalancerDriver", "metadata": meta, "spec": spec}


def bg_patches(obj, label="lb-app", finalizers=()):
	mutate = import_mutate()
	models = import_models()
	b = mutate.BackendGroupPatch(models.BackendGroupModel.from_dict(obj), label)
	b.add_label()
	b.set_default_protocol()
	b.add_finalizers(finalizers)
	return [p.to_dict() for p in b.patch()]


def driver_patches(obj, known, timeout=None, finalizers=()):
	mutate = import_mutate()
	models = import_models()
	kwargs = {} if timeout is None else {"default_timeout": timeout}
	d = mutate.DriverPatch(models.LoadBalancerDriverModel.from_dict(obj), known, **kwargs)
	d.set_webhooks()
	d.add_finalizers(finalizers)
	return [p.to_dict() for p in d.patch()]


def apply(obj, patches):
	return jsonpatch.apply_patch(copy.deepcopy(obj), patches)


# Label checks

def test_no_labels_creates_map():
	assert bg_patches(backend_group()) == [
		{"op": "add", "path": "/metadata/labels", "value": {"lb-app": "lb-1"}}
	]


def test_empty_labels_creates_map():
	assert bg_patches(backend_group(labels={})) == [
		{"op": "add", "path": "/metadata/labels", "value": {"lb-app": "lb-1"}}
	]


def test_missing_key_is_added_next_to_other_labels():
	patches = bg_patches(backend_group(labels={"team": "x"}))
	assert patches == [{"op": "add", "path": "/metadata/labels/lb-app", "value": "lb-1"}]
	assert apply(backend_group(labels={"team": "x"}), patches)["metadata"]["labels"] == {
		"team": "x",
		"lb-app": "lb-1",
	}


def test_wrong_value_is_replaced():
	assert bg_patches(backend_group(labels={"lb-app": "lb-2"})) == [
		{"op": "replace", "path": "/metadata/labels/lb-app", "value": "lb-1"}
	]


def test_correct_label_is_left_alone():
	assert bg_patches(backend_group(labels={"lb-app": "lb-1", "team": "x"})) == []


def test_default_association_key_is_escaped():
	mutate = import_mutate()
	models = import_models()
	obj = backend_group(labels={"team": "x"})
	b = mutate.BackendGroupPatch(models.BackendGroupModel.from_dict(obj))
	b.add_label()
	(p,) = b.patch()
	assert p.path == "/metadata/labels/lbcf.tkestack.io~1lb-name"
	assert apply(obj, [p.to_dict()])["metadata"]["labels"]["lbcf.tkestack.io/lb-name"] == "lb-1"


@pytest.mark.parametrize("lb_name", ["", None])
def test_missing_lb_name_is_a_precondition_error(lb_name):
	mutate = import_mutate()
	models = import_models()
	obj = backend_group(lb_name=lb_name)
	with pytest.raises(mutate.PreconditionError):
		mutate.BackendGroupPatch(models.BackendGroupModel.from_dict(obj), "lb-app")


# Protocol defaults

def test_service_protocol_defaulted():
	patches = bg_patches(backend_group(labels={"lb-app": "lb-1"}, service={"name": "svc", "port": {"portNumber": 80}}))
	assert patches == [{"op": "add", "path": "/spec/service/port/protocol", "value": "TCP"}]


def test_pods_protocol_defaulted():
	patches = bg_patches(backend_group(labels={"lb-app": "lb-1"}, pods={"port": {"portNumber": 8080}}))
	assert patches == [{"op": "add", "path": "/spec/pods/port/protocol", "value": "TCP"}]


def test_protocol_already_set_is_kept():
	obj = backend_group(labels={"lb-app": "lb-1"}, service={"port": {"portNumber": 80, "protocol": "UDP"}})
	assert bg_patches(obj) == []


def test_service_takes_precedence_over_pods():
	obj = backend_group(
		labels={"lb-app": "lb-1"},
		service={"port": {"portNumber": 80}},
		pods={"port": {"portNumber": 8080}},
	)
	assert bg_patches(obj) == [{"op": "add", "path": "/spec/service/port/protocol", "value": "TCP"}]


def test_pods_defaulted_when_service_has_protocol():
	obj = backend_group(
		labels={"lb-app": "lb-1"},
		service={"port": {"portNumber": 80, "protocol": "TCP"}},
		pods={"port": {"portNumber": 8080}},
	)
	assert bg_patches(obj) == [{"op": "add", "path": "/spec/pods/port/protocol", "value": "TCP"}]


def test_label_patch_comes_before_protocol_patch():
	patches = bg_patches(backend_group(labels={"lb-app": "other"}, pods={"port": {"portNumber": 8080}}))
	assert [p["path"] for p in patches] == ["/metadata/labels/lb-app", "/spec/pods/port/protocol"]


@pytest.mark.parametrize(
	"obj",
	[
		backend_group(),
		backend_group(labels={"team": "x"}, service={"port": {"portNumber": 80}}),
		backend_group(labels={"lb-app": "lb-2"}, pods={"port": {"portNumber": 8080}}),
	],
)
def test_backend_group_patches_are_idempotent(obj):
	patched = apply(obj, bg_patches(obj, finalizers=("lbcf.tkestack.io/deregister",)))
	assert patched["metadata"]["labels"]["lb-app"] == "lb-1"
	assert bg_patches(patched, finalizers=("lbcf.tkestack.io/deregister",)) == []


# Finalizers

def test_finalizers_created_then_appended():
	patches = bg_patches(backend_group(labels={"lb-app": "lb-1"}), finalizers=("a.io/one", "a.io/two", "a.io/one"))
	assert patches == [
		{"op": "add", "path": "/metadata/finalizers", "value": ["a.io/one"]},
		{"op": "add", "path": "/metadata/finalizers/-", "value": "a.io/two"},
	]


def test_present_finalizer_not_duplicated():
	obj = backend_group(labels={"lb-app": "lb-1"}, finalizers=["a.io/one"])
	patches = bg_patches(obj, finalizers=("a.io/one", "a.io/two"))
	assert patches == [{"op": "add", "path": "/metadata/finalizers/-", "value": "a.io/two"}]
	assert apply(obj, patches)["metadata"]["finalizers"] == ["a.io/one", "a.io/two"]


# Driver webhooks

def test_missing_webhook_appended_with_default_timeout():
	patches = driver_patches(driver(webhooks=[{"name": "validate"}]), ("validate", "notify"))
	assert patches == [
		{"op": "add", "path": "/spec/webhooks/-", "value": {"name": "notify", "timeout": "10s"}}
	]


@pytest.mark.parametrize("webhooks", [None, []])
def test_webhook_list_initialized_first(webhooks):
	patches = driver_patches(driver(webhooks=webhooks), ("a", "b"))
	assert patches == [
		{"op": "add", "path": "/spec/webhooks", "value": []},
		{"op": "add", "path": "/spec/webhooks/-", "value": {"name": "a", "timeout": "10s"}},
		{"op": "add", "path": "/spec/webhooks/-", "value": {"name": "b", "timeout": "10s"}},
	]


def test_complete_driver_needs_no_patch():
	obj = driver(webhooks=[{"name": "a", "timeout": "3s"}, {"name": "b"}])
	assert driver_patches(obj, ("a", "b")) == []


def test_configured_timeout_is_used():
	patches = driver_patches(driver(webhooks=[{"name": "a"}]), ("a", "b"), timeout=timedelta(seconds=30))
	assert patches[0]["value"] == {"name": "b", "timeout": "30s"}


def test_non_positive_timeout_rejected():
	mutate = import_mutate()
	models = import_models()
	with pytest.raises(mutate.PreconditionError):
		mutate.DriverPatch(models.LoadBalancerDriverModel.from_dict(driver()), ("a",), timedelta(0))


@pytest.mark.parametrize(
	"present",
	[
		[],
		["validateLoadBalancer"],
		["deregisterBackend", "createLoadBalancer", "validateBackend"],
		["unknownHook", "ensureLoadBalancer"],
	],
)
def test_driver_webhook_set_completed(present):
	store = importlib.import_module("lbcf_admission.store.static_store")
	known = store.StaticRegistry().names()
	obj = driver(webhooks=[{"name": n, "timeout": "5s"} for n in present])
	patches = driver_patches(obj, known)
	appended = [p["value"]["name"] for p in patches if p["path"] == "/spec/webhooks/-"]
	assert appended == [n for n in known if n not in present]

	patched = apply(obj, patches)
	names = [w["name"] for w in patched["spec"]["webhooks"]]
	assert len(names) == len(set(names))
	assert set(known) <= set(names)
	assert driver_patches(patched, known) == []
