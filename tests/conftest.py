"""
Root conftest.py: env vars, in-memory cluster and metadata store.

Sets up the test environment so the backend can be imported and exercised
without a Kubernetes cluster or a PostgreSQL server.
"""

import os
import sys
from datetime import datetime, timezone

import pytest

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("KUBERNETES_IN_CLUSTER", "false")

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from kubernetes import client  # noqa: E402
from kubernetes.client.rest import ApiException  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from dbsaas.config import Settings  # noqa: E402
from dbsaas.database import init_db  # noqa: E402
from dbsaas.k8s import KubernetesManager  # noqa: E402
from dbsaas.schemas import ProvisionRequest  # noqa: E402


# ============================================================================
# In-memory cluster
# ============================================================================

def _matches(labels, selector):
    if not selector:
        return True
    labels = labels or {}
    for term in selector.split(","):
        key, _, value = term.partition("=")
        if labels.get(key) != value:
            return False
    return True


class _Items:
    def __init__(self, items):
        self.items = items


class FakeCluster:
    """
    Stores objects by (kind, namespace, name) and answers like the API
    server: 404 for missing objects, 409 for duplicates.
    """

    def __init__(self):
        self.objects = {}
        self.calls = []
        self.failures = {}
        self.core_v1 = FakeCoreV1(self)
        self.apps_v1 = FakeAppsV1(self)
        self.custom_objects = FakeCustomObjects(self)

    def fail(self, op, kind, name, status=500, reason="Internal Server Error"):
        """Make the next matching call raise ApiException(status)"""
        self.failures[(op, kind, name)] = ApiException(status=status, reason=reason)

    def _check_failure(self, op, kind, name):
        exc = self.failures.pop((op, kind, name), None)
        if exc is not None:
            raise exc

    def create(self, kind, namespace, name, body):
        self.calls.append(("create", kind, namespace, name))
        self._check_failure("create", kind, name)
        if namespace is not None and ("Namespace", None, namespace) not in self.objects:
            raise ApiException(status=404, reason="Not Found")
        key = (kind, namespace, name)
        if key in self.objects:
            raise ApiException(status=409, reason="AlreadyExists")
        self.objects[key] = body
        return body

    def read(self, kind, namespace, name):
        self.calls.append(("read", kind, namespace, name))
        self._check_failure("read", kind, name)
        try:
            return self.objects[(kind, namespace, name)]
        except KeyError:
            raise ApiException(status=404, reason="Not Found")

    def delete(self, kind, namespace, name):
        self.calls.append(("delete", kind, namespace, name))
        self._check_failure("delete", kind, name)
        try:
            del self.objects[(kind, namespace, name)]
        except KeyError:
            raise ApiException(status=404, reason="Not Found")

    def list_objects(self, kind, namespace, label_selector):
        self.calls.append(("list", kind, namespace, label_selector))
        return [
            obj for (k, ns, _), obj in self.objects.items()
            if k == kind and ns == namespace and _matches(self.labels_of(obj), label_selector)
        ]

    def names(self, kind, namespace=None):
        return sorted(name for (k, ns, name) in self.objects if k == kind and ns == namespace)

    def get(self, kind, namespace, name):
        return self.objects.get((kind, namespace, name))

    @staticmethod
    def labels_of(obj):
        if isinstance(obj, dict):
            return obj.get("metadata", {}).get("labels")
        return obj.metadata.labels


def _stamp(body):
    body.metadata.creation_timestamp = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
    return body


class FakeCoreV1:
    def __init__(self, cluster):
        self.cluster = cluster

    def read_namespace(self, name):
        return self.cluster.read("Namespace", None, name)

    def create_namespace(self, body):
        _stamp(body)
        body.status = client.V1NamespaceStatus(phase="Active")
        return self.cluster.create("Namespace", None, body.metadata.name, body)

    def list_namespace(self, label_selector=None, limit=None):
        items = self.cluster.list_objects("Namespace", None, label_selector)
        return _Items(items[:limit] if limit else items)

    def create_namespaced_service(self, namespace, body):
        return self.cluster.create("Service", namespace, body.metadata.name, _stamp(body))

    def read_namespaced_service(self, name, namespace):
        return self.cluster.read("Service", namespace, name)

    def delete_namespaced_service(self, name, namespace):
        return self.cluster.delete("Service", namespace, name)


class FakeAppsV1:
    def __init__(self, cluster):
        self.cluster = cluster

    def create_namespaced_deployment(self, namespace, body):
        return self.cluster.create("Deployment", namespace, body.metadata.name, _stamp(body))

    def read_namespaced_deployment(self, name, namespace):
        return self.cluster.read("Deployment", namespace, name)

    def delete_namespaced_deployment(self, name, namespace):
        return self.cluster.delete("Deployment", namespace, name)

    def list_namespaced_deployment(self, namespace, label_selector=None):
        return _Items(self.cluster.list_objects("Deployment", namespace, label_selector))


class FakeCustomObjects:
    KINDS = {"middlewares": "Middleware", "ingressroutes": "IngressRoute"}

    def __init__(self, cluster):
        self.cluster = cluster
        self.groups = []

    def create_namespaced_custom_object(self, group, version, namespace, plural, body):
        self.groups.append((group, version))
        return self.cluster.create(self.KINDS[plural], namespace, body["metadata"]["name"], body)

    def delete_namespaced_custom_object(self, group, version, namespace, plural, name):
        return self.cluster.delete(self.KINDS[plural], namespace, name)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def settings():
    return Settings(
        CLUSTER_ENTRY_HOST="10.9.21.201",
        CLUSTER_ENTRY_SCHEME="http",
        MANAGED_BY="db-saas",
        MYSQL_PATH_REWRITE="replace_path_regex",
        SECRET_KEY="test-secret-key",
    )


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def k8s(cluster):
    return KubernetesManager(cluster.core_v1, cluster.apps_v1, cluster.custom_objects)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    return engine


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def postgres_request():
    return ProvisionRequest(
        database_name="orders-db",
        db_username="orders",
        db_password="s3cret",
        database_type="postgresql",
        tenant_id=7,
        tenant_handle="alice",
    )


@pytest.fixture
def mysql_request():
    return ProvisionRequest(
        database_name="catalog",
        db_username="shop",
        db_password="hunter2",
        database_type="mysql",
        tenant_id=3,
        tenant_handle="bob",
    )
