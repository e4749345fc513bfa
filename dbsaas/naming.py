"""
DB SaaS Backend - Naming
Deterministic names, labels and URLs shared by creation, listing and deletion.

These formats are a contract with already-provisioned tenants: changing any of
them breaks reachability of existing admin consoles.
"""
import re

from .exceptions import InvalidRequestError
from .policies import EnginePolicy

MAX_NAMESPACE_LENGTH = 63

DATABASE_NAME_PATTERN = re.compile(r"[a-z0-9-]+")

# Label keys
LABEL_APP = "app"
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
LABEL_COMPONENT = "app.kubernetes.io/component"
LABEL_TYPE = "db-saas/type"
LABEL_USER_ID = "db-saas/user-id"
LABEL_USER_NAMESPACE = "db-saas/user-namespace"

COMPONENT_DATABASE = "database"
COMPONENT_ADMIN = "admin-dashboard"

ROLE_DATABASE = "database"
ROLE_ADMIN = "admin"


def derive_namespace(tenant_id: int, tenant_handle: str) -> str:
    """
    Tenant namespace: decimal id followed by the handle, cut to 63 characters.

    Two handles sharing the same 63-character prefix map to the same namespace.
    """
    name = f"{tenant_id}{tenant_handle}"
    if len(name) > MAX_NAMESPACE_LENGTH:
        name = name[:MAX_NAMESPACE_LENGTH]
    return name


def derive_resource_name(database_name: str, role: str, policy: EnginePolicy) -> str:
    if role == ROLE_DATABASE:
        return database_name
    if role == ROLE_ADMIN:
        return f"{database_name}-{policy.admin_suffix}"
    raise ValueError(f"Unknown resource role: {role}")


def derive_path_prefix(namespace: str, database_name: str, admin_suffix: str) -> str:
    return f"/{namespace}/{database_name}-{admin_suffix}"


def derive_admin_url(scheme: str, entry_host: str, namespace: str, database_name: str, policy: EnginePolicy) -> str:
    prefix = derive_path_prefix(namespace, database_name, policy.admin_suffix)
    return f"{scheme}://{entry_host}{prefix}"


def derive_service_host(database_name: str, namespace: str, dns_suffix: str) -> str:
    return f"{database_name}.{namespace}.{dns_suffix}"


def headers_middleware_name(database_name: str, policy: EnginePolicy) -> str:
    return f"{database_name}-{policy.admin_suffix}-headers"


def strip_prefix_middleware_name(database_name: str, policy: EnginePolicy) -> str:
    return f"{database_name}-{policy.admin_suffix}-stripprefix"


def replace_path_middleware_name(database_name: str, policy: EnginePolicy) -> str:
    return f"{database_name}-{policy.admin_suffix}-replacepath"


def ingress_route_name(database_name: str, policy: EnginePolicy) -> str:
    return f"{database_name}-{policy.admin_suffix}-ingress"


def label_selector(labels: dict) -> str:
    """Render an equality-based label selector"""
    return ",".join(f"{key}={value}" for key, value in labels.items())


def database_selector(managed_by: str) -> str:
    return label_selector({
        LABEL_MANAGED_BY: managed_by,
        LABEL_COMPONENT: COMPONENT_DATABASE,
    })


def validate_database_name(database_name: str) -> str:
    if not database_name or not DATABASE_NAME_PATTERN.fullmatch(database_name):
        raise InvalidRequestError(
            f"Invalid database name {database_name!r}: use lowercase letters, digits and '-'"
        )
    return database_name
