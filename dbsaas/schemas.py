"""
DB SaaS Backend - Pydantic Schemas
Request/response validation schemas
"""
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from datetime import datetime
from typing import Optional

from .exceptions import InvalidRequestError
from .models import DatabaseStatus
from .naming import validate_database_name
from .policies import DatabaseType


# ============================================================================
# Core Schemas
# ============================================================================

class ProvisionRequest(BaseModel):
    """Everything the provisioner needs to deploy one database"""
    database_name: str
    db_username: str = Field(min_length=1)
    db_password: str = Field(min_length=1)
    database_type: DatabaseType
    tenant_id: int
    tenant_handle: str = Field(min_length=1)

    @field_validator("database_name")
    @classmethod
    def _check_database_name(cls, value: str) -> str:
        return validate_database_name(value)

    @field_validator("database_type", mode="before")
    @classmethod
    def _parse_database_type(cls, value) -> DatabaseType:
        return DatabaseType.parse(value)


class ProvisionResult(BaseModel):
    """How to reach a freshly provisioned database and its admin console"""
    name: str
    host: str
    port: int
    username: str
    type: DatabaseType
    status: DatabaseStatus
    message: str
    namespace: str
    admin_url: str
    admin_type: str


class DatabaseSummary(BaseModel):
    """A database found in the cluster"""
    name: str
    type: Optional[str]
    status: DatabaseStatus
    namespace: str
    tenant_id: Optional[str]
    admin_url: Optional[str]
    admin_type: Optional[str]
    created_at: Optional[datetime]


class NamespaceSummary(BaseModel):
    """A tenant namespace with its database count"""
    name: str
    created_at: Optional[datetime]
    database_count: int
    status: str


# ============================================================================
# Database Schemas
# ============================================================================

class CreateDatabaseRequest(BaseModel):
    """Schema for a tenant's database creation request"""
    database_name: str
    db_username: str = Field(min_length=1)
    db_password: str = Field(min_length=1)
    database_type: DatabaseType
    tenant_id: int

    @field_validator("database_name")
    @classmethod
    def _check_database_name(cls, value: str) -> str:
        return validate_database_name(value)

    @field_validator("database_type", mode="before")
    @classmethod
    def _parse_database_type(cls, value) -> DatabaseType:
        return DatabaseType.parse(value)


class DatabaseRecordResponse(BaseModel):
    """Schema for stored database records"""
    id: int
    name: str
    type: str
    host: str
    port: int
    db_username: str
    namespace: str
    tenant_id: int
    admin_url: Optional[str]
    admin_type: Optional[str]
    status: DatabaseStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DatabaseRecordListResponse(BaseModel):
    databases: list[DatabaseRecordResponse]
    total: int


class DatabaseListResponse(BaseModel):
    namespace: str
    databases: list[DatabaseSummary]
    count: int


class NamespaceListResponse(BaseModel):
    namespaces: list[NamespaceSummary]
    total: int


class StatusUpdateRequest(BaseModel):
    status: DatabaseStatus


class DecommissionResponse(BaseModel):
    name: str
    namespace: str
    status: str
    message: str


# ============================================================================
# User Schemas
# ============================================================================

class RegisterRequest(BaseModel):
    """Schema for user registration"""
    username: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1)
    confirm_password: str
    first_name: str = ""
    last_name: str = ""

    @model_validator(mode="after")
    def _passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise InvalidRequestError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    username: str
    password: str


class UserResponse(BaseModel):
    """Schema for user API responses"""
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    created_at: datetime

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint"""
    status: str
    version: str
    database: str
    kubernetes: str
