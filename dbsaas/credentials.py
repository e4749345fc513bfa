"""
DB SaaS Backend - Credential Store
Tenant accounts and the records of the databases they own
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import settings as default_settings
from .exceptions import AuthenticationError, ResourceConflictError, ResourceNotFoundError
from .models import DatabaseRecord, DatabaseStatus, User
from .schemas import ProvisionResult

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class CredentialStore:
    """Users and database records backed by the metadata store"""

    def __init__(self, db: Session, settings=None):
        self.db = db
        self.settings = settings or default_settings

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def register(self, username: str, email: str, password: str,
                 first_name: str = "", last_name: str = "") -> User:
        existing = (
            self.db.query(User)
            .filter((User.username == username) | (User.email == email))
            .first()
        )
        if existing:
            raise ResourceConflictError("User", username)

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ResourceConflictError("User", username)
        self.db.refresh(user)

        logger.info(f"Registered user {username} (id={user.id})")
        return user

    def authenticate(self, username: str, password: str) -> User:
        user = self.db.query(User).filter(User.username == username).first()
        if not user or not verify_password(password, user.password_hash):
            logger.warning(f"Failed login for {username}")
            raise AuthenticationError("Invalid username or password")
        return user

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError("User", str(user_id))
        return user

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.utcnow() + (
            expires_delta or timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        claims = {"sub": str(user.id), "username": user.username, "exp": expire}
        return jwt.encode(claims, self.settings.SECRET_KEY, algorithm=self.settings.ALGORITHM)

    # ------------------------------------------------------------------
    # Database records
    # ------------------------------------------------------------------

    def record_database(self, result: ProvisionResult, tenant_id: int) -> DatabaseRecord:
        record = DatabaseRecord(
            name=result.name,
            type=result.type.value,
            host=result.host,
            port=result.port,
            db_username=result.username,
            namespace=result.namespace,
            tenant_id=tenant_id,
            admin_url=result.admin_url,
            admin_type=result.admin_type,
            status=DatabaseStatus.CREATING,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ResourceConflictError("Database record", result.name, result.namespace)
        self.db.refresh(record)
        return record

    def list_databases(self, tenant_id: int) -> list[DatabaseRecord]:
        return (
            self.db.query(DatabaseRecord)
            .filter(DatabaseRecord.tenant_id == tenant_id)
            .order_by(DatabaseRecord.created_at.desc())
            .all()
        )

    def _get_record(self, namespace: str, name: str) -> DatabaseRecord:
        record = (
            self.db.query(DatabaseRecord)
            .filter(DatabaseRecord.namespace == namespace, DatabaseRecord.name == name)
            .first()
        )
        if not record:
            raise ResourceNotFoundError("Database record", name, namespace)
        return record

    def update_status(self, namespace: str, name: str, status: DatabaseStatus) -> DatabaseRecord:
        record = self._get_record(namespace, name)
        record.status = status
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"Database {namespace}/{name} is now {status.value}")
        return record

    def delete_database(self, namespace: str, name: str) -> bool:
        """Delete a record; returns False when there was none"""
        try:
            record = self._get_record(namespace, name)
        except ResourceNotFoundError:
            return False
        self.db.delete(record)
        self.db.commit()
        return True
