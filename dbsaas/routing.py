"""
DB SaaS Backend - Routing Specs
Traefik IngressRoute and Middleware objects for the admin consoles.

Routing objects are typed internally and only turned into CRD dictionaries at
the Kubernetes API boundary.
"""
from dataclasses import dataclass, field
from typing import Union

from .naming import (
    LABEL_APP,
    LABEL_MANAGED_BY,
    ROLE_ADMIN,
    derive_path_prefix,
    derive_resource_name,
    headers_middleware_name,
    ingress_route_name,
    replace_path_middleware_name,
    strip_prefix_middleware_name,
)
from .policies import EnginePolicy, PathRewrite
from .schemas import ProvisionRequest

MIDDLEWARE_PLURAL = "middlewares"
INGRESS_ROUTE_PLURAL = "ingressroutes"


# -------------------------------------------------------------------
# Middleware variants
# -------------------------------------------------------------------

@dataclass(frozen=True)
class HeaderInjection:
    name: str
    headers: dict

    def spec(self) -> dict:
        return {"headers": {"customRequestHeaders": dict(self.headers)}}


@dataclass(frozen=True)
class PathPrefixStrip:
    name: str
    prefixes: tuple

    def spec(self) -> dict:
        return {"stripPrefix": {"prefixes": list(self.prefixes)}}


@dataclass(frozen=True)
class PathRegexRewrite:
    name: str
    regex: str
    replacement: str

    def spec(self) -> dict:
        return {"replacePathRegex": {"regex": self.regex, "replacement": self.replacement}}


Middleware = Union[HeaderInjection, PathPrefixStrip, PathRegexRewrite]

PATH_REWRITE_MIDDLEWARES = (PathPrefixStrip, PathRegexRewrite)


@dataclass(frozen=True)
class RoutingRule:
    name: str
    namespace: str
    entry_host: str
    path_prefix: str
    service_name: str
    service_port: int
    middlewares: tuple
    entrypoints: tuple = ("web",)
    labels: dict = field(default_factory=dict)

    @property
    def match(self) -> str:
        return f'Host("{self.entry_host}") && PathPrefix("{self.path_prefix}")'


@dataclass(frozen=True)
class RoutingSpec:
    """Middlewares in creation order, then the rule that references them"""
    middlewares: tuple
    route: RoutingRule


# -------------------------------------------------------------------
# Builders
# -------------------------------------------------------------------

def build_path_rewrite(database_name: str, path_prefix: str, policy: EnginePolicy):
    """Return the single path rewrite middleware for the policy, or None"""
    if policy.path_rewrite is PathRewrite.NONE:
        return None
    if policy.path_rewrite is PathRewrite.STRIP_PREFIX:
        return PathPrefixStrip(
            name=strip_prefix_middleware_name(database_name, policy),
            prefixes=(path_prefix,),
        )
    return PathRegexRewrite(
        name=replace_path_middleware_name(database_name, policy),
        regex=f"^{path_prefix}/(.*)",
        replacement="/$1",
    )


def build_routing(
    request: ProvisionRequest,
    namespace: str,
    policy: EnginePolicy,
    entry_host: str,
    entrypoints=("web",),
    managed_by: str = "db-saas",
) -> RoutingSpec:
    """
    Build the admin console route.

    The header middleware is always present. Consoles that know their mount
    path get nothing else; the others get exactly one path rewrite, referenced
    after the headers.
    """
    path_prefix = derive_path_prefix(namespace, request.database_name, policy.admin_suffix)
    service_name = derive_resource_name(request.database_name, ROLE_ADMIN, policy)

    headers = HeaderInjection(
        name=headers_middleware_name(request.database_name, policy),
        headers={
            "X-User-ID": str(request.tenant_id),
            "X-Username": request.tenant_handle,
            "X-Namespace": namespace,
        },
    )
    middlewares = [headers]
    rewrite = build_path_rewrite(request.database_name, path_prefix, policy)
    if rewrite is not None:
        middlewares.append(rewrite)

    route = RoutingRule(
        name=ingress_route_name(request.database_name, policy),
        namespace=namespace,
        entry_host=entry_host,
        path_prefix=path_prefix,
        service_name=service_name,
        service_port=policy.admin_port,
        middlewares=tuple(middlewares),
        entrypoints=tuple(entrypoints),
        labels={
            LABEL_APP: service_name,
            LABEL_MANAGED_BY: managed_by,
        },
    )
    return RoutingSpec(middlewares=tuple(middlewares), route=route)


def routing_object_names(database_name: str, policy: EnginePolicy) -> tuple:
    """
    Names of the route and every middleware that may exist for a database.

    Both rewrite variants are listed so cleanup also covers objects created
    under a previously configured rewrite strategy.
    """
    middlewares = [headers_middleware_name(database_name, policy)]
    if not policy.mount_path_aware:
        middlewares.append(replace_path_middleware_name(database_name, policy))
        middlewares.append(strip_prefix_middleware_name(database_name, policy))
    return ingress_route_name(database_name, policy), tuple(middlewares)


# -------------------------------------------------------------------
# Wire format
# -------------------------------------------------------------------

def middleware_manifest(middleware: Middleware, namespace: str, api_version: str) -> dict:
    return {
        "apiVersion": api_version,
        "kind": "Middleware",
        "metadata": {
            "name": middleware.name,
            "namespace": namespace,
        },
        "spec": middleware.spec(),
    }


def route_manifest(rule: RoutingRule, api_version: str) -> dict:
    return {
        "apiVersion": api_version,
        "kind": "IngressRoute",
        "metadata": {
            "name": rule.name,
            "namespace": rule.namespace,
            "labels": dict(rule.labels),
        },
        "spec": {
            "entryPoints": list(rule.entrypoints),
            "routes": [
                {
                    "match": rule.match,
                    "kind": "Rule",
                    "middlewares": [{"name": m.name} for m in rule.middlewares],
                    "services": [
                        {
                            "name": rule.service_name,
                            "port": rule.service_port,
                        }
                    ],
                }
            ],
        },
    }
