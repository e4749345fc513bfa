"""
DB SaaS Backend - Resource Specs
Declarative Kubernetes objects for a database and its admin console
"""
from dataclasses import dataclass

from kubernetes import client

from .naming import (
    COMPONENT_ADMIN,
    COMPONENT_DATABASE,
    LABEL_APP,
    LABEL_COMPONENT,
    LABEL_MANAGED_BY,
    LABEL_TYPE,
    LABEL_USER_ID,
    LABEL_USER_NAMESPACE,
    ROLE_ADMIN,
    ROLE_DATABASE,
    derive_path_prefix,
    derive_resource_name,
)
from .policies import DatabaseType, EnginePolicy, ResourceBand
from .schemas import ProvisionRequest


@dataclass
class DatabaseResources:
    """The four objects deployed for one database, in creation order"""
    database_deployment: client.V1Deployment
    database_service: client.V1Service
    admin_deployment: client.V1Deployment
    admin_service: client.V1Service


# -------------------------------------------------------------------
# Shared helpers
# -------------------------------------------------------------------

def build_namespace(namespace: str, managed_by: str) -> client.V1Namespace:
    return client.V1Namespace(
        metadata=client.V1ObjectMeta(
            name=namespace,
            labels={
                LABEL_MANAGED_BY: managed_by,
                LABEL_USER_NAMESPACE: "true",
            }
        )
    )


def build_labels(name: str, component: str, request: ProvisionRequest, managed_by: str) -> dict:
    return {
        LABEL_APP: name,
        LABEL_COMPONENT: component,
        LABEL_MANAGED_BY: managed_by,
        LABEL_TYPE: request.database_type.value,
        LABEL_USER_ID: str(request.tenant_id),
    }


def _resources(band: ResourceBand) -> client.V1ResourceRequirements:
    return client.V1ResourceRequirements(
        requests={"memory": band.request_memory, "cpu": band.request_cpu},
        limits={"memory": band.limit_memory, "cpu": band.limit_cpu},
    )


def _env(pairs: list[tuple[str, str]]) -> list[client.V1EnvVar]:
    return [client.V1EnvVar(name=name, value=value) for name, value in pairs]


def _deployment(
    name: str,
    namespace: str,
    labels: dict,
    container_name: str,
    image: str,
    port: int,
    env: list[tuple[str, str]],
    band: ResourceBand,
) -> client.V1Deployment:
    return client.V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels=labels),
        spec=client.V1DeploymentSpec(
            replicas=1,
            selector=client.V1LabelSelector(match_labels={LABEL_APP: name}),
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels={LABEL_APP: name}),
                spec=client.V1PodSpec(
                    containers=[
                        client.V1Container(
                            name=container_name,
                            image=image,
                            ports=[client.V1ContainerPort(container_port=port)],
                            env=_env(env),
                            resources=_resources(band),
                        )
                    ]
                ),
            ),
        ),
    )


def _service(name: str, namespace: str, labels: dict, port: int, port_name: str) -> client.V1Service:
    return client.V1Service(
        api_version="v1",
        kind="Service",
        metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels=labels),
        spec=client.V1ServiceSpec(
            type="ClusterIP",
            selector={LABEL_APP: name},
            ports=[
                client.V1ServicePort(
                    name=port_name,
                    port=port,
                    target_port=port,
                    protocol="TCP",
                )
            ],
        ),
    )


# -------------------------------------------------------------------
# PostgreSQL + pgAdmin
# -------------------------------------------------------------------

def build_postgresql_deployment(request: ProvisionRequest, namespace: str, policy: EnginePolicy,
                                managed_by: str) -> client.V1Deployment:
    name = derive_resource_name(request.database_name, ROLE_DATABASE, policy)
    return _deployment(
        name=name,
        namespace=namespace,
        labels=build_labels(name, COMPONENT_DATABASE, request, managed_by),
        container_name=policy.container_name,
        image=policy.image,
        port=policy.port,
        env=[
            ("POSTGRES_DB", request.database_name),
            ("POSTGRES_USER", request.db_username),
            ("POSTGRES_PASSWORD", request.db_password),
        ],
        band=policy.database_resources,
    )


def build_pgadmin_deployment(request: ProvisionRequest, namespace: str, policy: EnginePolicy,
                             managed_by: str, admin_email_domain: str) -> client.V1Deployment:
    """
    pgAdmin is told its mount path through SCRIPT_NAME, so the router must
    forward the full prefix untouched.
    """
    name = derive_resource_name(request.database_name, ROLE_ADMIN, policy)
    script_name = derive_path_prefix(namespace, request.database_name, policy.admin_suffix)
    return _deployment(
        name=name,
        namespace=namespace,
        labels=build_labels(name, COMPONENT_ADMIN, request, managed_by),
        container_name=policy.admin_container_name,
        image=policy.admin_image,
        port=policy.admin_port,
        env=[
            ("PGADMIN_DEFAULT_EMAIL", f"{request.db_username}@{admin_email_domain}"),
            ("PGADMIN_DEFAULT_PASSWORD", request.db_password),
            ("SCRIPT_NAME", script_name),
            ("PGADMIN_CONFIG_WTF_CSRF_ENABLED", "False"),
            ("PGADMIN_CONFIG_SESSION_COOKIE_SECURE", "False"),
            ("PGADMIN_LISTEN_ADDRESS", "0.0.0.0"),
            ("PGADMIN_LISTEN_PORT", str(policy.admin_port)),
        ],
        band=policy.admin_resources,
    )


# -------------------------------------------------------------------
# MySQL + phpMyAdmin
# -------------------------------------------------------------------

def build_mysql_deployment(request: ProvisionRequest, namespace: str, policy: EnginePolicy,
                           managed_by: str) -> client.V1Deployment:
    name = derive_resource_name(request.database_name, ROLE_DATABASE, policy)
    return _deployment(
        name=name,
        namespace=namespace,
        labels=build_labels(name, COMPONENT_DATABASE, request, managed_by),
        container_name=policy.container_name,
        image=policy.image,
        port=policy.port,
        env=[
            ("MYSQL_ROOT_PASSWORD", request.db_password),
            ("MYSQL_DATABASE", request.database_name),
            ("MYSQL_USER", request.db_username),
            ("MYSQL_PASSWORD", request.db_password),
        ],
        band=policy.database_resources,
    )


def build_phpmyadmin_deployment(request: ProvisionRequest, namespace: str, policy: EnginePolicy,
                                managed_by: str) -> client.V1Deployment:
    """phpMyAdmin has no notion of a sub path; it expects root-relative requests."""
    name = derive_resource_name(request.database_name, ROLE_ADMIN, policy)
    return _deployment(
        name=name,
        namespace=namespace,
        labels=build_labels(name, COMPONENT_ADMIN, request, managed_by),
        container_name=policy.admin_container_name,
        image=policy.admin_image,
        port=policy.admin_port,
        env=[
            ("PMA_HOST", derive_resource_name(request.database_name, ROLE_DATABASE, policy)),
            ("PMA_PORT", str(policy.port)),
            ("PMA_USER", request.db_username),
            ("PMA_PASSWORD", request.db_password),
            ("MYSQL_ROOT_PASSWORD", request.db_password),
        ],
        band=policy.admin_resources,
    )


# -------------------------------------------------------------------
# Services
# -------------------------------------------------------------------

def build_database_service(request: ProvisionRequest, namespace: str, policy: EnginePolicy,
                           managed_by: str) -> client.V1Service:
    name = derive_resource_name(request.database_name, ROLE_DATABASE, policy)
    return _service(
        name=name,
        namespace=namespace,
        labels=build_labels(name, COMPONENT_DATABASE, request, managed_by),
        port=policy.port,
        port_name=policy.port_name,
    )


def build_admin_service(request: ProvisionRequest, namespace: str, policy: EnginePolicy,
                        managed_by: str) -> client.V1Service:
    name = derive_resource_name(request.database_name, ROLE_ADMIN, policy)
    return _service(
        name=name,
        namespace=namespace,
        labels=build_labels(name, COMPONENT_ADMIN, request, managed_by),
        port=policy.admin_port,
        port_name="http",
    )


def build_database_resources(
    request: ProvisionRequest,
    namespace: str,
    policy: EnginePolicy,
    managed_by: str,
    admin_email_domain: str,
) -> DatabaseResources:
    """
    Build every workload and service for a provisioning request.

    Args:
        request: validated provisioning request
        namespace: derived tenant namespace
        policy: policy entry for request.database_type
        managed_by: value of the managed-by label
        admin_email_domain: domain of the generated pgAdmin login

    Returns:
        DatabaseResources: database and admin console objects
    """
    if policy.database_type is DatabaseType.POSTGRESQL:
        database_deployment = build_postgresql_deployment(request, namespace, policy, managed_by)
        admin_deployment = build_pgadmin_deployment(request, namespace, policy, managed_by, admin_email_domain)
    else:
        database_deployment = build_mysql_deployment(request, namespace, policy, managed_by)
        admin_deployment = build_phpmyadmin_deployment(request, namespace, policy, managed_by)

    return DatabaseResources(
        database_deployment=database_deployment,
        database_service=build_database_service(request, namespace, policy, managed_by),
        admin_deployment=admin_deployment,
        admin_service=build_admin_service(request, namespace, policy, managed_by),
    )
