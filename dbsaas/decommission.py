"""
DB SaaS Backend - Database Decommissioning
Removes a database, its admin console and its route
"""

import enum
import logging
from functools import partial

from .config import Settings
from .exceptions import DecommissionError, ResourceNotFoundError
from .k8s import KubernetesManager
from .naming import LABEL_TYPE, ROLE_ADMIN, ROLE_DATABASE, derive_resource_name
from .policies import DatabaseType, get_policy
from .routing import routing_object_names

logger = logging.getLogger(__name__)


class DecommissionStep(str, enum.Enum):
    READ_TYPE = "read_type"
    ROUTE = "route"
    MIDDLEWARE = "middleware"
    ADMIN_IDENTITY = "admin_identity"
    ADMIN_WORKLOAD = "admin_workload"
    DB_IDENTITY = "db_identity"
    DB_WORKLOAD = "db_workload"


class DatabaseDecommissioner:
    """
    Deletes everything provisioned for one database, route first and the
    database workload last.

    Only the database workload delete decides the outcome; earlier failures
    are logged as warnings because a leftover route or middleware answers 404
    once its service is gone.
    """

    def __init__(self, k8s: KubernetesManager, settings: Settings):
        self.k8s = k8s
        self.settings = settings

    def detect_database_type(self, namespace: str, database_name: str) -> DatabaseType:
        try:
            deployment = self.k8s.get_deployment(namespace, database_name)
        except Exception as e:
            raise DecommissionError(DecommissionStep.READ_TYPE.value, namespace, database_name, e) from e
        labels = deployment.metadata.labels or {}
        return DatabaseType.from_label(labels.get(LABEL_TYPE))

    def decommission(self, database_name: str, namespace: str):
        logger.info(f"Starting deletion of database '{database_name}' in namespace '{namespace}'")

        db_type = self.detect_database_type(namespace, database_name)
        logger.info(f"Detected database type: {db_type.value}")

        policy = get_policy(db_type)
        route_name, middleware_names = routing_object_names(database_name, policy)
        admin_name = derive_resource_name(database_name, ROLE_ADMIN, policy)
        db_name = derive_resource_name(database_name, ROLE_DATABASE, policy)

        cleanup = [(DecommissionStep.ROUTE, partial(self.k8s.delete_ingress_route, namespace, route_name))]
        cleanup += [
            (DecommissionStep.MIDDLEWARE, partial(self.k8s.delete_middleware, namespace, name))
            for name in middleware_names
        ]
        cleanup += [
            (DecommissionStep.ADMIN_IDENTITY, partial(self.k8s.delete_service, namespace, admin_name)),
            (DecommissionStep.ADMIN_WORKLOAD, partial(self.k8s.delete_deployment, namespace, admin_name)),
            (DecommissionStep.DB_IDENTITY, partial(self.k8s.delete_service, namespace, db_name)),
        ]

        for step, action in cleanup:
            try:
                action()
            except ResourceNotFoundError as e:
                logger.info(f"Skipping {step.value}: {e}")
            except Exception as e:
                logger.warning(f"Failed to delete {step.value} for {namespace}/{database_name}: {e}")

        try:
            self.k8s.delete_deployment(namespace, db_name)
        except ResourceNotFoundError as e:
            logger.info(f"Database workload already gone: {e}")
        except Exception as e:
            logger.error(f"Failed to delete database workload {namespace}/{db_name}: {e}")
            raise DecommissionError(DecommissionStep.DB_WORKLOAD.value, namespace, database_name, e) from e

        logger.info(f"Deleted database '{database_name}' from namespace '{namespace}'")
