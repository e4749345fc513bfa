"""
DB SaaS Backend - Engine Policies
Single source of truth for every per-database-type decision
"""
import enum
from dataclasses import dataclass, replace
from typing import Optional

from .exceptions import InvalidRequestError, UnknownDatabaseTypeError


class DatabaseType(str, enum.Enum):
    """Supported database engines"""
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"

    @classmethod
    def parse(cls, value) -> "DatabaseType":
        """Parse a request value; 'postgres' is accepted as an alias"""
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        if normalized == "postgres":
            normalized = cls.POSTGRESQL.value
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidRequestError(f"Unsupported database type: {value!r}")

    @classmethod
    def from_label(cls, value: Optional[str]) -> "DatabaseType":
        """Recover the type stored on an existing workload; never guesses"""
        try:
            return cls(value)
        except ValueError:
            raise UnknownDatabaseTypeError(f"Unknown database type label: {value!r}")


class PathRewrite(str, enum.Enum):
    """How the router maps the public path prefix onto the admin console"""
    NONE = "none"                               # console knows its mount path
    STRIP_PREFIX = "strip_prefix"               # console expects root-relative paths
    REPLACE_PATH_REGEX = "replace_path_regex"   # same, via ^prefix/(.*) -> /$1


@dataclass(frozen=True)
class ResourceBand:
    request_memory: str
    request_cpu: str
    limit_memory: str
    limit_cpu: str


@dataclass(frozen=True)
class EnginePolicy:
    database_type: DatabaseType
    label: str
    image: str
    port: int
    port_name: str
    container_name: str
    admin_suffix: str
    admin_label: str
    admin_image: str
    admin_port: int
    admin_container_name: str
    # True when the console is told its sub path (SCRIPT_NAME) and must see the full prefix
    mount_path_aware: bool
    path_rewrite: PathRewrite
    database_resources: ResourceBand
    admin_resources: ResourceBand


DATABASE_RESOURCES = ResourceBand("256Mi", "100m", "512Mi", "500m")

POLICIES = {
    DatabaseType.POSTGRESQL: EnginePolicy(
        database_type=DatabaseType.POSTGRESQL,
        label="PostgreSQL",
        image="postgres:14",
        port=5432,
        port_name="postgres",
        container_name="postgres",
        admin_suffix="pgadmin",
        admin_label="pgAdmin",
        admin_image="dpage/pgadmin4:latest",
        admin_port=80,
        admin_container_name="pgadmin",
        mount_path_aware=True,
        path_rewrite=PathRewrite.NONE,
        database_resources=DATABASE_RESOURCES,
        admin_resources=ResourceBand("256Mi", "100m", "256Mi", "300m"),
    ),
    DatabaseType.MYSQL: EnginePolicy(
        database_type=DatabaseType.MYSQL,
        label="MySQL",
        image="mysql:8.0",
        port=3306,
        port_name="mysql",
        container_name="mysql",
        admin_suffix="phpmyadmin",
        admin_label="phpMyAdmin",
        admin_image="phpmyadmin:5.2",
        admin_port=80,
        admin_container_name="phpmyadmin",
        mount_path_aware=False,
        path_rewrite=PathRewrite.REPLACE_PATH_REGEX,
        database_resources=DATABASE_RESOURCES,
        admin_resources=ResourceBand("128Mi", "50m", "256Mi", "200m"),
    ),
}


def get_policy(database_type, path_rewrite: Optional[str] = None) -> EnginePolicy:
    """
    Look up the policy for a database type.

    Args:
        database_type: DatabaseType or its string value
        path_rewrite: configured rewrite for mount-path agnostic consoles;
            ignored for consoles that know their mount path

    Returns:
        EnginePolicy: immutable policy entry
    """
    policy = POLICIES[DatabaseType.parse(database_type)]
    if path_rewrite is None or policy.mount_path_aware:
        return policy

    try:
        rewrite = PathRewrite(path_rewrite)
    except ValueError:
        raise InvalidRequestError(f"Unknown path rewrite: {path_rewrite!r}")
    if rewrite is PathRewrite.NONE:
        raise InvalidRequestError(
            f"{policy.admin_label} is not mount-path aware and needs a path rewrite"
        )
    return replace(policy, path_rewrite=rewrite)
