"""
Namespace ensurer tests.
"""

import pytest

from dbsaas.exceptions import NamespaceUnavailableError
from dbsaas.namespaces import NamespaceEnsurer


@pytest.fixture
def ensurer(k8s):
    return NamespaceEnsurer(k8s, "db-saas")


class TestNamespaceEnsurer:

    def test_creates_missing_namespace(self, ensurer, cluster):
        ensurer.ensure("7alice")
        assert cluster.names("Namespace") == ["7alice"]
        labels = cluster.get("Namespace", None, "7alice").metadata.labels
        assert labels["app.kubernetes.io/managed-by"] == "db-saas"
        assert labels["db-saas/user-namespace"] == "true"

    def test_idempotent(self, ensurer, cluster):
        ensurer.ensure("7alice")
        ensurer.ensure("7alice")
        creates = [c for c in cluster.calls if c[0] == "create" and c[1] == "Namespace"]
        assert len(creates) == 1

    def test_existing_namespace_left_untouched(self, ensurer, cluster):
        ensurer.ensure("7alice")
        existing = cluster.get("Namespace", None, "7alice")
        existing.metadata.labels["team"] = "payments"

        ensurer.ensure("7alice")
        assert cluster.get("Namespace", None, "7alice").metadata.labels["team"] == "payments"

    def test_concurrent_create_counts_as_success(self, ensurer, cluster):
        cluster.fail("create", "Namespace", "7alice", status=409, reason="AlreadyExists")
        ensurer.ensure("7alice")

    def test_api_failure_propagates(self, ensurer, cluster):
        cluster.fail("read", "Namespace", "7alice", status=500)
        with pytest.raises(NamespaceUnavailableError):
            ensurer.ensure("7alice")

    def test_create_failure_propagates(self, ensurer, cluster):
        cluster.fail("create", "Namespace", "7alice", status=503, reason="Service Unavailable")
        with pytest.raises(NamespaceUnavailableError):
            ensurer.ensure("7alice")
