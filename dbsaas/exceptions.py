"""
DB SaaS Backend - Error Taxonomy
Errors raised by the provisioning core and translated by the HTTP layer
"""
from typing import Optional


class DbaasError(Exception):
    """Base class for every error raised by the backend"""


class NamespaceUnavailableError(DbaasError):
    """Kubernetes API unreachable or answering with an unexpected status"""


class ResourceConflictError(DbaasError):
    """Create on an object that already exists"""

    def __init__(self, kind: str, name: str, namespace: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        where = f" in namespace {namespace}" if namespace else ""
        super().__init__(f"{kind} {name} already exists{where}")


class ResourceNotFoundError(DbaasError):
    """Get or delete target missing"""

    def __init__(self, kind: str, name: str, namespace: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        where = f" in namespace {namespace}" if namespace else ""
        super().__init__(f"{kind} {name} not found{where}")


class UnknownDatabaseTypeError(DbaasError):
    """An existing database workload carries no recognizable type label"""


class InvalidRequestError(DbaasError, ValueError):
    """Malformed names or inconsistent request fields"""


class RoutingUnavailableError(DbaasError):
    """Traefik CRD client not initialized"""


class AuthenticationError(DbaasError):
    """Unknown user or wrong password"""


class ProvisioningError(DbaasError):
    """
    A provisioning step failed.

    Carries the failing step and the last step that completed so an operator
    can decide whether to decommission the leftovers.
    """

    def __init__(self, step, last_completed_step, namespace: str, database_name: str, cause: Exception):
        self.step = step
        self.last_completed_step = last_completed_step
        self.namespace = namespace
        self.database_name = database_name
        self.cause = cause
        super().__init__(
            f"Provisioning of {database_name} in {namespace} failed at {step.value} "
            f"(last completed: {last_completed_step.value}): {cause}"
        )


class DecommissionError(DbaasError):
    """The authoritative database workload delete failed"""

    def __init__(self, step: str, namespace: str, database_name: str, cause: Exception):
        self.step = step
        self.namespace = namespace
        self.database_name = database_name
        self.cause = cause
        super().__init__(
            f"Decommission of {database_name} in {namespace} failed at {step}: {cause}"
        )
