import logging

import kubernetes

from .config import NAMESPACE

logger = logging.getLogger(__name__)


def load_kube_config():
    try:
        kubernetes.config.load_incluster_config()
        logger.info("Loaded in-cluster config")
    except kubernetes.config.ConfigException:
        kubernetes.config.load_kube_config()
        logger.info("Loaded local kubeconfig")


class ObjectManager:
    """Thin wrapper over the Kubernetes API for one namespace."""

    def __init__(self, namespace=NAMESPACE, apps_api=None, core_api=None):
        self.namespace = namespace

        if apps_api is None or core_api is None:
            load_kube_config()
            api_client = kubernetes.client.ApiClient()
            apps_api = apps_api or kubernetes.client.AppsV1Api(api_client)
            core_api = core_api or kubernetes.client.CoreV1Api(api_client)

        self.apps_api = apps_api
        self.core_api = core_api

    def get_annotations(self, name):
        deployment = self.apps_api.read_namespaced_deployment(name, self.namespace)
        return dict(deployment.metadata.annotations or {})

    def get_replica_spec(self, name):
        scale = self.apps_api.read_namespaced_deployment_scale(name, self.namespace)
        return scale.spec

    def scale(self, name, count):
        self.apps_api.patch_namespaced_deployment_scale(
            name=name,
            namespace=self.namespace,
            body={"spec": {"replicas": count}}
        )
        logger.info(f"Requested {count} replicas for {self.namespace}/{name}")

    def get_endpoints(self, name):
        try:
            endpoint = self.core_api.read_namespaced_endpoints(name, self.namespace)
        except kubernetes.client.exceptions.ApiException as e:
            if e.status == 404:
                logger.info(f"Endpoints {name} not found in namespace {self.namespace}")
                return []
            raise

        return [
            address.ip
            for subset in endpoint.subsets or []
            for address in subset.addresses or []
        ]
