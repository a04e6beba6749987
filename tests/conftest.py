"""
Shared fakes for the metric scaler tests.

Nothing here talks to a cluster or the network: the object manager and the
HTTP session are replaced with in-memory stand-ins.
"""

import logging
from types import SimpleNamespace

import pytest
import requests

LOG = logging.getLogger("metric_scaler.tests")

ANNOTATIONS = {
    "metric_scaler_current_metric_name": "puma_busy_threads",
    "metric_scaler_max_metric_name": "puma_max_threads",
    "metric_scaler_max_replicas": "5",
    "metric_scaler_min_replicas": "1",
    "metric_scaler_target_usage_pct": "50",
    "metric_scaler_scale_threshold_pct": "10",
}


class FakeObjectManager:
    """In-memory stand-in for ObjectManager."""

    def __init__(self, annotations=None, replicas=3, pod_ips=None):
        self.annotations = dict(ANNOTATIONS if annotations is None else annotations)
        self.replicas = replicas
        self.pod_ips = list(pod_ips if pod_ips is not None else [f"10.0.0.{i}" for i in range(replicas)])
        self.scale_calls = []
        self.endpoint_calls = 0
        # When set, the pod list grows/shrinks to the new count after this many endpoint polls
        self.converge_after = 0
        self._pending = None

    def get_annotations(self, name):
        return dict(self.annotations)

    def get_replica_spec(self, name):
        return SimpleNamespace(replicas=self.replicas)

    def scale(self, name, count):
        self.scale_calls.append((name, count))
        self.replicas = count
        self._pending = count

    def get_endpoints(self, name):
        self.endpoint_calls += 1
        pending = self._pending
        if pending is not None and self.converge_after is not None:
            if self.converge_after <= 0:
                self.pod_ips = [f"10.0.0.{i}" for i in range(pending)]
                self._pending = None
            else:
                self.converge_after -= 1
        return list(self.pod_ips)


class FakeResponse:
    def __init__(self, text="", status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Serves canned metrics bodies (or exceptions) keyed by pod IP."""

    def __init__(self, bodies):
        self.bodies = bodies
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        ip = url.split("//", 1)[1].split(":", 1)[0]
        body = self.bodies[ip]
        if isinstance(body, Exception):
            raise body
        if isinstance(body, FakeResponse):
            return body
        return FakeResponse(body)


class FakeSampler:
    """Returns queued samples, then repeats the last one."""

    def __init__(self, samples):
        self.samples = list(samples)
        self.calls = 0

    def sample_percent_usage(self, workload_name, current_metric_name, max_metric_name):
        self.calls += 1
        if len(self.samples) > 1:
            return self.samples.pop(0)
        return self.samples[0]


def metrics_body(current, maximum, current_name="puma_busy_threads", max_name="puma_max_threads"):
    return (
        "# HELP puma_busy_threads Number of busy threads\n"
        "# TYPE puma_busy_threads gauge\n"
        f"{current_name} {current}\n"
        "\n"
        f"{max_name} {maximum}\n"
    )


@pytest.fixture
def logger():
    return LOG


@pytest.fixture
def object_manager():
    return FakeObjectManager()
