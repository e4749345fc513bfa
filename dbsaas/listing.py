"""
DB SaaS Backend - Listing
Databases and tenant namespaces as seen in the cluster
"""

import logging

from .config import Settings
from .exceptions import ResourceNotFoundError, UnknownDatabaseTypeError
from .k8s import KubernetesManager
from .models import DatabaseStatus
from .naming import (
    LABEL_MANAGED_BY,
    LABEL_TYPE,
    LABEL_USER_ID,
    database_selector,
    derive_admin_url,
    label_selector,
)
from .policies import DatabaseType, get_policy
from .schemas import DatabaseSummary, NamespaceSummary

logger = logging.getLogger(__name__)


class DatabaseLister:
    """Reads provisioned databases back from their labels"""

    def __init__(self, k8s: KubernetesManager, settings: Settings):
        self.k8s = k8s
        self.settings = settings

    def list_databases(self, namespace: str) -> list[DatabaseSummary]:
        """
        List the databases of a namespace.

        A database is running when its service exists and error otherwise.
        The admin URL is rebuilt from the type label with the same formula
        used at creation time.
        """
        deployments = self.k8s.list_deployments(namespace, database_selector(self.settings.MANAGED_BY))

        databases = []
        for deployment in deployments:
            name = deployment.metadata.name
            labels = deployment.metadata.labels or {}
            db_type = labels.get(LABEL_TYPE)

            try:
                self.k8s.get_service(namespace, name)
                status = DatabaseStatus.RUNNING
            except ResourceNotFoundError:
                status = DatabaseStatus.ERROR

            admin_url = None
            admin_type = None
            try:
                policy = get_policy(DatabaseType.from_label(db_type))
                admin_url = derive_admin_url(
                    self.settings.CLUSTER_ENTRY_SCHEME,
                    self.settings.CLUSTER_ENTRY_HOST,
                    namespace,
                    name,
                    policy,
                )
                admin_type = policy.admin_label
            except UnknownDatabaseTypeError:
                logger.warning(f"Database {namespace}/{name} has no known type label")

            databases.append(DatabaseSummary(
                name=name,
                type=db_type,
                status=status,
                namespace=namespace,
                tenant_id=labels.get(LABEL_USER_ID),
                admin_url=admin_url,
                admin_type=admin_type,
                created_at=deployment.metadata.creation_timestamp,
            ))

        logger.info(f"Found {len(databases)} databases in namespace {namespace}")
        return databases

    def list_namespaces(self) -> list[NamespaceSummary]:
        namespaces = self.k8s.list_namespaces(label_selector({LABEL_MANAGED_BY: self.settings.MANAGED_BY}))
        selector = database_selector(self.settings.MANAGED_BY)

        result = []
        for ns in namespaces:
            name = ns.metadata.name
            count = len(self.k8s.list_deployments(name, selector))
            phase = ns.status.phase if ns.status else None

            result.append(NamespaceSummary(
                name=name,
                created_at=ns.metadata.creation_timestamp,
                database_count=count,
                status=phase or "Unknown",
            ))

        logger.info(f"Found {len(result)} managed namespaces")
        return result
