"""
DB SaaS Backend - Database Provisioning
Deploys a database, its admin console and the console's route for a tenant
"""

import enum
import logging

from .config import Settings
from .exceptions import ProvisioningError, RoutingUnavailableError
from .k8s import KubernetesManager
from .models import DatabaseStatus
from .namespaces import NamespaceEnsurer
from .naming import derive_admin_url, derive_namespace, derive_service_host
from .policies import get_policy
from .resources import build_database_resources
from .routing import build_routing, middleware_manifest, route_manifest
from .schemas import ProvisionRequest, ProvisionResult

logger = logging.getLogger(__name__)


class ProvisionStep(str, enum.Enum):
    """Provisioning states, in the only order they can be reached"""
    START = "start"
    NAMESPACE_ENSURED = "namespace_ensured"
    DB_WORKLOAD_CREATED = "db_workload_created"
    DB_IDENTITY_CREATED = "db_identity_created"
    ADMIN_WORKLOAD_CREATED = "admin_workload_created"
    ADMIN_IDENTITY_CREATED = "admin_identity_created"
    MIDDLEWARE_CREATED = "middleware_created"
    ROUTE_CREATED = "route_created"
    DONE = "done"


class DatabaseProvisioner:
    """Runs the provisioning steps strictly in sequence"""

    def __init__(self, k8s: KubernetesManager, settings: Settings, namespaces: NamespaceEnsurer = None):
        self.k8s = k8s
        self.settings = settings
        self.namespaces = namespaces or NamespaceEnsurer(k8s, settings.MANAGED_BY)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def provision(self, request: ProvisionRequest) -> ProvisionResult:
        """
        Provision a database and its admin console.

        Nothing is rolled back when a step fails: objects created by earlier
        steps stay in place and the raised ProvisioningError names the failing
        step and the last completed one, so the leftovers can be decommissioned.

        Args:
            request: validated provisioning request

        Returns:
            ProvisionResult: connection details and admin console URL

        Raises:
            RoutingUnavailableError: Traefik client missing, nothing was created
            ProvisioningError: a step failed
        """
        if not self.k8s.routing_available:
            raise RoutingUnavailableError(
                "Traefik CRD client not available, refusing to deploy an unreachable admin console"
            )

        policy = get_policy(request.database_type, self.settings.MYSQL_PATH_REWRITE)
        namespace = derive_namespace(request.tenant_id, request.tenant_handle)

        logger.info(
            f"Deploying {policy.database_type.value} database '{request.database_name}' "
            f"to namespace '{namespace}'"
        )

        resources = build_database_resources(
            request,
            namespace,
            policy,
            managed_by=self.settings.MANAGED_BY,
            admin_email_domain=self.settings.ADMIN_EMAIL_DOMAIN,
        )
        routing = build_routing(
            request,
            namespace,
            policy,
            entry_host=self.settings.CLUSTER_ENTRY_HOST,
            entrypoints=self.settings.TRAEFIK_ENTRYPOINTS,
            managed_by=self.settings.MANAGED_BY,
        )
        api_version = self.k8s.traefik_api_version

        steps = [
            (ProvisionStep.NAMESPACE_ENSURED,
             lambda: self.namespaces.ensure(namespace)),
            (ProvisionStep.DB_WORKLOAD_CREATED,
             lambda: self.k8s.create_deployment(namespace, resources.database_deployment)),
            (ProvisionStep.DB_IDENTITY_CREATED,
             lambda: self.k8s.create_service(namespace, resources.database_service)),
            (ProvisionStep.ADMIN_WORKLOAD_CREATED,
             lambda: self.k8s.create_deployment(namespace, resources.admin_deployment)),
            (ProvisionStep.ADMIN_IDENTITY_CREATED,
             lambda: self.k8s.create_service(namespace, resources.admin_service)),
            (ProvisionStep.MIDDLEWARE_CREATED,
             lambda: [
                 self.k8s.create_middleware(namespace, middleware_manifest(m, namespace, api_version))
                 for m in routing.middlewares
             ]),
            (ProvisionStep.ROUTE_CREATED,
             lambda: self.k8s.create_ingress_route(namespace, route_manifest(routing.route, api_version))),
        ]

        last_completed = ProvisionStep.START
        for step, action in steps:
            try:
                action()
            except Exception as e:
                logger.error(
                    f"Provisioning of {namespace}/{request.database_name} failed at {step.value} "
                    f"(last completed: {last_completed.value}): {e}"
                )
                raise ProvisioningError(step, last_completed, namespace, request.database_name, e) from e
            last_completed = step

        result = self.describe(request)
        logger.info(f"Provisioned {namespace}/{request.database_name}, admin console at {result.admin_url}")
        return result

    def describe(self, request: ProvisionRequest) -> ProvisionResult:
        """
        Connection details a request will produce, derived without touching
        the cluster so the record can be stored before provisioning starts.
        """
        policy = get_policy(request.database_type)
        namespace = derive_namespace(request.tenant_id, request.tenant_handle)
        admin_url = derive_admin_url(
            self.settings.CLUSTER_ENTRY_SCHEME,
            self.settings.CLUSTER_ENTRY_HOST,
            namespace,
            request.database_name,
            policy,
        )

        return ProvisionResult(
            name=request.database_name,
            host=derive_service_host(request.database_name, namespace, self.settings.CLUSTER_DNS_SUFFIX),
            port=policy.port,
            username=request.db_username,
            type=policy.database_type,
            status=DatabaseStatus.CREATING,
            message=(
                f"{policy.label} database and {policy.admin_label} dashboard deployment "
                f"initiated in namespace '{namespace}'"
            ),
            namespace=namespace,
            admin_url=admin_url,
            admin_type=policy.admin_label,
        )
