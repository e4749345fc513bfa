"""
DB SaaS Backend - Kubernetes Integration
Namespace, workload, service and Traefik CRD operations
"""

import logging
from contextlib import contextmanager
from typing import Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError as TransportError

from .exceptions import (
    InvalidRequestError,
    NamespaceUnavailableError,
    ResourceConflictError,
    ResourceNotFoundError,
    RoutingUnavailableError,
)
from .routing import INGRESS_ROUTE_PLURAL, MIDDLEWARE_PLURAL

logger = logging.getLogger(__name__)


@contextmanager
def _api_call(kind: str, name: str, namespace: Optional[str] = None):
    """Translate Kubernetes client failures into backend errors"""
    try:
        yield
    except ApiException as e:
        if e.status == 404:
            raise ResourceNotFoundError(kind, name, namespace) from e
        if e.status == 409:
            raise ResourceConflictError(kind, name, namespace) from e
        if e.status in (400, 422):
            raise InvalidRequestError(f"{kind} {name} rejected by the API: {e.reason}") from e
        logger.error(f"Kubernetes API error on {kind} {name}: {e.status} {e.reason}")
        raise NamespaceUnavailableError(
            f"Kubernetes API error on {kind} {name}: {e.status} {e.reason}"
        ) from e
    except TransportError as e:
        logger.error(f"Kubernetes API unreachable ({kind} {name}): {e}")
        raise NamespaceUnavailableError(f"Kubernetes API unreachable: {e}") from e


# -------------------------------------------------------------------
# Kubernetes Manager
# -------------------------------------------------------------------

class KubernetesManager:
    """Manages Kubernetes operations for tenant databases"""

    def __init__(
        self,
        core_v1: client.CoreV1Api,
        apps_v1: client.AppsV1Api,
        custom_objects: Optional[client.CustomObjectsApi] = None,
        traefik_group: str = "traefik.io",
        traefik_version: str = "v1alpha1",
    ):
        self.core_v1 = core_v1
        self.apps_v1 = apps_v1
        self.custom_objects = custom_objects
        self.traefik_group = traefik_group
        self.traefik_version = traefik_version

    @classmethod
    def from_config(cls, settings) -> "KubernetesManager":
        try:
            if settings.KUBERNETES_IN_CLUSTER:
                config.load_incluster_config()
                logger.info("Loaded in-cluster Kubernetes configuration")
            else:
                config.load_kube_config(config_file=settings.KUBECONFIG_PATH or None)
                logger.info("Loaded local Kubernetes configuration")

            return cls(
                core_v1=client.CoreV1Api(),
                apps_v1=client.AppsV1Api(),
                custom_objects=client.CustomObjectsApi(),
                traefik_group=settings.TRAEFIK_API_GROUP,
                traefik_version=settings.TRAEFIK_API_VERSION,
            )

        except Exception as e:
            logger.error(f"Failed to initialize Kubernetes client: {e}")
            raise

    @property
    def traefik_api_version(self) -> str:
        return f"{self.traefik_group}/{self.traefik_version}"

    def ping(self):
        with _api_call("Namespace", "*"):
            self.core_v1.list_namespace(limit=1)

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------

    def get_namespace(self, name: str) -> client.V1Namespace:
        with _api_call("Namespace", name):
            return self.core_v1.read_namespace(name)

    def create_namespace(self, body: client.V1Namespace) -> client.V1Namespace:
        name = body.metadata.name
        with _api_call("Namespace", name):
            created = self.core_v1.create_namespace(body)
        logger.info(f"Created namespace: {name}")
        return created

    def list_namespaces(self, label_selector: str) -> list:
        with _api_call("Namespace", label_selector):
            return self.core_v1.list_namespace(label_selector=label_selector).items

    # ------------------------------------------------------------------
    # Deployments
    # ------------------------------------------------------------------

    def get_deployment(self, namespace: str, name: str) -> client.V1Deployment:
        with _api_call("Deployment", name, namespace):
            return self.apps_v1.read_namespaced_deployment(name, namespace)

    def create_deployment(self, namespace: str, body: client.V1Deployment) -> client.V1Deployment:
        name = body.metadata.name
        with _api_call("Deployment", name, namespace):
            created = self.apps_v1.create_namespaced_deployment(namespace, body)
        logger.info(f"Created deployment: {namespace}/{name}")
        return created

    def delete_deployment(self, namespace: str, name: str):
        with _api_call("Deployment", name, namespace):
            self.apps_v1.delete_namespaced_deployment(name, namespace)
        logger.info(f"Deleted deployment: {namespace}/{name}")

    def list_deployments(self, namespace: str, label_selector: str) -> list:
        with _api_call("Deployment", label_selector, namespace):
            return self.apps_v1.list_namespaced_deployment(namespace, label_selector=label_selector).items

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def get_service(self, namespace: str, name: str) -> client.V1Service:
        with _api_call("Service", name, namespace):
            return self.core_v1.read_namespaced_service(name, namespace)

    def create_service(self, namespace: str, body: client.V1Service) -> client.V1Service:
        name = body.metadata.name
        with _api_call("Service", name, namespace):
            created = self.core_v1.create_namespaced_service(namespace, body)
        logger.info(f"Created service: {namespace}/{name}")
        return created

    def delete_service(self, namespace: str, name: str):
        with _api_call("Service", name, namespace):
            self.core_v1.delete_namespaced_service(name, namespace)
        logger.info(f"Deleted service: {namespace}/{name}")

    # ------------------------------------------------------------------
    # Traefik CRDs
    # ------------------------------------------------------------------

    @property
    def routing_available(self) -> bool:
        return self.custom_objects is not None

    def _require_custom_objects(self) -> client.CustomObjectsApi:
        if self.custom_objects is None:
            raise RoutingUnavailableError("Traefik CRD client not available")
        return self.custom_objects

    def _create_custom(self, kind: str, plural: str, namespace: str, body: dict) -> dict:
        api = self._require_custom_objects()
        name = body["metadata"]["name"]
        with _api_call(kind, name, namespace):
            created = api.create_namespaced_custom_object(
                group=self.traefik_group,
                version=self.traefik_version,
                namespace=namespace,
                plural=plural,
                body=body,
            )
        logger.info(f"Created {kind}: {namespace}/{name}")
        return created

    def _delete_custom(self, kind: str, plural: str, namespace: str, name: str):
        api = self._require_custom_objects()
        with _api_call(kind, name, namespace):
            api.delete_namespaced_custom_object(
                group=self.traefik_group,
                version=self.traefik_version,
                namespace=namespace,
                plural=plural,
                name=name,
            )
        logger.info(f"Deleted {kind}: {namespace}/{name}")

    def create_middleware(self, namespace: str, body: dict) -> dict:
        return self._create_custom("Middleware", MIDDLEWARE_PLURAL, namespace, body)

    def delete_middleware(self, namespace: str, name: str):
        self._delete_custom("Middleware", MIDDLEWARE_PLURAL, namespace, name)

    def create_ingress_route(self, namespace: str, body: dict) -> dict:
        return self._create_custom("IngressRoute", INGRESS_ROUTE_PLURAL, namespace, body)

    def delete_ingress_route(self, namespace: str, name: str):
        self._delete_custom("IngressRoute", INGRESS_ROUTE_PLURAL, namespace, name)
