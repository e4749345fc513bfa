"""
DB SaaS Backend - Namespace Ensurer
Get-or-create of tenant namespaces
"""
import logging

from .exceptions import ResourceConflictError, ResourceNotFoundError
from .k8s import KubernetesManager
from .resources import build_namespace

logger = logging.getLogger(__name__)


class NamespaceEnsurer:
    """Makes sure a tenant namespace exists; never modifies an existing one"""

    def __init__(self, k8s: KubernetesManager, managed_by: str):
        self.k8s = k8s
        self.managed_by = managed_by

    def ensure(self, namespace: str):
        try:
            self.k8s.get_namespace(namespace)
            logger.debug(f"Namespace {namespace} already exists")
            return
        except ResourceNotFoundError:
            pass

        try:
            self.k8s.create_namespace(build_namespace(namespace, self.managed_by))
        except ResourceConflictError:
            # A concurrent first request for the same tenant won the create
            logger.info(f"Namespace {namespace} created concurrently")
