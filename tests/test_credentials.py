"""
Credential store tests: tenant accounts and database records.
"""

import pytest
from jose import jwt

from dbsaas.credentials import CredentialStore, hash_password, verify_password
from dbsaas.exceptions import AuthenticationError, ResourceConflictError, ResourceNotFoundError
from dbsaas.models import DatabaseStatus
from dbsaas.policies import DatabaseType
from dbsaas.schemas import ProvisionResult


@pytest.fixture
def store(db_session, settings):
    return CredentialStore(db_session, settings)


@pytest.fixture
def alice(store):
    return store.register("alice", "alice@example.com", "correct horse", "Alice", "Liddell")


def _result(name="orders-db", namespace="1alice"):
    return ProvisionResult(
        name=name,
        host=f"{name}.{namespace}.svc.cluster.local",
        port=5432,
        username="orders",
        type=DatabaseType.POSTGRESQL,
        status=DatabaseStatus.CREATING,
        message="initiated",
        namespace=namespace,
        admin_url=f"http://10.9.21.201/{namespace}/{name}-pgadmin",
        admin_type="pgAdmin",
    )


class TestPasswords:

    def test_hash_is_not_plaintext(self):
        hashed = hash_password("s3cret")
        assert hashed != "s3cret"
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)


class TestUsers:

    def test_register(self, alice):
        assert alice.id is not None
        assert alice.username == "alice"
        assert alice.password_hash != "correct horse"

    def test_duplicate_username(self, store, alice):
        with pytest.raises(ResourceConflictError):
            store.register("alice", "other@example.com", "pw")

    def test_duplicate_email(self, store, alice):
        with pytest.raises(ResourceConflictError):
            store.register("alice2", "alice@example.com", "pw")

    def test_authenticate(self, store, alice):
        assert store.authenticate("alice", "correct horse").id == alice.id

    @pytest.mark.parametrize("username,password", [
        ("alice", "wrong"),
        ("nobody", "correct horse"),
    ])
    def test_authenticate_rejects(self, store, alice, username, password):
        with pytest.raises(AuthenticationError):
            store.authenticate(username, password)

    def test_get_user(self, store, alice):
        assert store.get_user(alice.id).username == "alice"
        with pytest.raises(ResourceNotFoundError):
            store.get_user(9999)

    def test_access_token(self, store, alice, settings):
        token = store.create_access_token(alice)
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert claims["sub"] == str(alice.id)
        assert claims["username"] == "alice"


class TestDatabaseRecords:

    def test_record_and_list(self, store, alice):
        record = store.record_database(_result(), alice.id)

        assert record.status is DatabaseStatus.CREATING
        assert record.type == "postgresql"
        assert record.port == 5432
        assert [r.name for r in store.list_databases(alice.id)] == ["orders-db"]

    def test_duplicate_record(self, store, alice):
        store.record_database(_result(), alice.id)
        with pytest.raises(ResourceConflictError):
            store.record_database(_result(), alice.id)

    def test_same_name_in_another_namespace(self, store, alice):
        store.record_database(_result(), alice.id)
        store.record_database(_result(namespace="1alice-staging"), alice.id)
        assert len(store.list_databases(alice.id)) == 2

    def test_update_status(self, store, alice):
        store.record_database(_result(), alice.id)
        record = store.update_status("1alice", "orders-db", DatabaseStatus.RUNNING)
        assert record.status is DatabaseStatus.RUNNING

    def test_update_status_of_unknown_record(self, store):
        with pytest.raises(ResourceNotFoundError):
            store.update_status("1alice", "ghost", DatabaseStatus.ERROR)

    def test_delete(self, store, alice):
        store.record_database(_result(), alice.id)
        assert store.delete_database("1alice", "orders-db") is True
        assert store.delete_database("1alice", "orders-db") is False
        assert store.list_databases(alice.id) == []
