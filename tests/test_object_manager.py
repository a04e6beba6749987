from types import SimpleNamespace

import kubernetes
import pytest

from metric_scaler.object_manager import ObjectManager


class FakeAppsApi:
    def __init__(self, annotations=None, replicas=2):
        self.annotations = annotations
        self.replicas = replicas
        self.patches = []

    def read_namespaced_deployment(self, name, namespace):
        return SimpleNamespace(metadata=SimpleNamespace(name=name, annotations=self.annotations))

    def read_namespaced_deployment_scale(self, name, namespace):
        return SimpleNamespace(spec=SimpleNamespace(replicas=self.replicas))

    def patch_namespaced_deployment_scale(self, name, namespace, body):
        self.patches.append((name, namespace, body))


class FakeCoreApi:
    def __init__(self, endpoint=None, error=None):
        self.endpoint = endpoint
        self.error = error

    def read_namespaced_endpoints(self, name, namespace):
        if self.error is not None:
            raise self.error
        return self.endpoint


def endpoints(*subsets):
    return SimpleNamespace(subsets=[
        SimpleNamespace(addresses=[SimpleNamespace(ip=ip) for ip in ips] if ips is not None else None)
        for ips in subsets
    ])


def make_manager(apps_api=None, core_api=None):
    return ObjectManager(namespace="apps", apps_api=apps_api or FakeAppsApi(), core_api=core_api or FakeCoreApi())


def test_get_annotations():
    manager = make_manager(FakeAppsApi(annotations={"metric_scaler_min_replicas": "1"}))
    assert manager.get_annotations("api") == {"metric_scaler_min_replicas": "1"}


def test_get_annotations_when_none():
    assert make_manager(FakeAppsApi(annotations=None)).get_annotations("api") == {}


def test_get_replica_spec():
    assert make_manager(FakeAppsApi(replicas=4)).get_replica_spec("api").replicas == 4


def test_scale_patches_scale_subresource():
    apps_api = FakeAppsApi()
    make_manager(apps_api).scale("api", 3)
    assert apps_api.patches == [("api", "apps", {"spec": {"replicas": 3}})]


def test_get_endpoints_flattens_subsets():
    core_api = FakeCoreApi(endpoints(["10.0.0.1", "10.0.0.2"], None, ["10.0.1.1"]))
    assert make_manager(core_api=core_api).get_endpoints("api") == ["10.0.0.1", "10.0.0.2", "10.0.1.1"]


def test_get_endpoints_without_subsets():
    core_api = FakeCoreApi(SimpleNamespace(subsets=None))
    assert make_manager(core_api=core_api).get_endpoints("api") == []


def test_get_endpoints_not_found():
    core_api = FakeCoreApi(error=kubernetes.client.exceptions.ApiException(status=404))
    assert make_manager(core_api=core_api).get_endpoints("api") == []


def test_get_endpoints_other_errors_propagate():
    core_api = FakeCoreApi(error=kubernetes.client.exceptions.ApiException(status=500))
    with pytest.raises(kubernetes.client.exceptions.ApiException):
        make_manager(core_api=core_api).get_endpoints("api")
