"""
DB SaaS Backend - Database Models
Users and the databases they own
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from .database import Base


class DatabaseStatus(str, enum.Enum):
    """Database lifecycle states"""
    CREATING = "creating"   # Workloads submitted, not yet confirmed
    RUNNING = "running"     # Workload and service present
    ERROR = "error"         # Provisioning failed or service missing


class User(Base):
    """Tenants of the platform"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    databases = relationship("DatabaseRecord", back_populates="tenant", cascade="all, delete-orphan")


class DatabaseRecord(Base):
    """A database provisioned for a tenant"""
    __tablename__ = "databases"
    __table_args__ = (
        UniqueConstraint("namespace", "name", name="uq_databases_namespace_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(50), nullable=False)

    # Connection details
    host = Column(String(255), nullable=False)
    port = Column(Integer, nullable=False)
    db_username = Column(String(100), nullable=False)

    # Kubernetes identifiers
    namespace = Column(String(100), nullable=False, index=True)
    tenant_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Admin console
    admin_url = Column(String(500), nullable=True)
    admin_type = Column(String(50), nullable=True)

    status = Column(Enum(DatabaseStatus), default=DatabaseStatus.CREATING, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    tenant = relationship("User", back_populates="databases")
