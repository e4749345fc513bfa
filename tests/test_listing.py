"""
Listing tests: databases per namespace and managed namespaces.
"""

from datetime import datetime, timezone

import pytest

from dbsaas.listing import DatabaseLister
from dbsaas.models import DatabaseStatus
from dbsaas.provisioning import DatabaseProvisioner
from dbsaas.resources import build_namespace


@pytest.fixture
def provisioner(k8s, settings):
    return DatabaseProvisioner(k8s, settings)


@pytest.fixture
def lister(k8s, settings):
    return DatabaseLister(k8s, settings)


class TestListDatabases:

    def test_empty_namespace(self, lister):
        assert lister.list_databases("7alice") == []

    def test_running_database(self, provisioner, lister, postgres_request):
        provisioner.provision(postgres_request)

        [database] = lister.list_databases("7alice")
        assert database.name == "orders-db"
        assert database.type == "postgresql"
        assert database.status is DatabaseStatus.RUNNING
        assert database.tenant_id == "7"
        assert database.admin_type == "pgAdmin"
        assert database.created_at == datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def test_admin_workloads_are_not_listed(self, provisioner, lister, mysql_request):
        provisioner.provision(mysql_request)
        assert [d.name for d in lister.list_databases("3bob")] == ["catalog"]

    def test_missing_service_means_error(self, provisioner, lister, postgres_request, k8s):
        provisioner.provision(postgres_request)
        k8s.delete_service("7alice", "orders-db")

        [database] = lister.list_databases("7alice")
        assert database.status is DatabaseStatus.ERROR

    def test_unknown_type_has_no_admin_url(self, provisioner, lister, postgres_request, cluster):
        provisioner.provision(postgres_request)
        cluster.get("Deployment", "7alice", "orders-db").metadata.labels["db-saas/type"] = "mongodb"

        [database] = lister.list_databases("7alice")
        assert database.type == "mongodb"
        assert database.admin_url is None
        assert database.admin_type is None


class TestListNamespaces:

    def test_counts_databases(self, provisioner, lister, postgres_request, mysql_request):
        provisioner.provision(postgres_request)
        provisioner.provision(mysql_request)
        provisioner.provision(mysql_request.model_copy(update={"database_name": "ledger"}))

        namespaces = {ns.name: ns for ns in lister.list_namespaces()}
        assert set(namespaces) == {"7alice", "3bob"}
        assert namespaces["7alice"].database_count == 1
        assert namespaces["3bob"].database_count == 2
        assert namespaces["3bob"].status == "Active"

    def test_ignores_unmanaged_namespaces(self, lister, k8s):
        k8s.create_namespace(build_namespace("kube-tools", "someone-else"))
        k8s.create_namespace(build_namespace("9carol", "db-saas"))

        assert [ns.name for ns in lister.list_namespaces()] == ["9carol"]
