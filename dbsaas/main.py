"""
DB SaaS Backend - Main Application
FastAPI application with database provisioning endpoints
"""
import logging
from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from .config import settings
from .credentials import CredentialStore
from .database import get_db, init_db
from .decommission import DatabaseDecommissioner, DecommissionStep
from .exceptions import (
    AuthenticationError,
    DbaasError,
    DecommissionError,
    InvalidRequestError,
    NamespaceUnavailableError,
    ProvisioningError,
    ResourceConflictError,
    ResourceNotFoundError,
    RoutingUnavailableError,
    UnknownDatabaseTypeError,
)
from .k8s import KubernetesManager
from .listing import DatabaseLister
from .models import DatabaseStatus
from .provisioning import DatabaseProvisioner
from .schemas import (
    AuthResponse,
    CreateDatabaseRequest,
    DatabaseListResponse,
    DatabaseRecordListResponse,
    DatabaseRecordResponse,
    DecommissionResponse,
    HealthCheckResponse,
    LoginRequest,
    NamespaceListResponse,
    ProvisionRequest,
    ProvisionResult,
    RegisterRequest,
    StatusUpdateRequest,
    UserResponse,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Per-tenant MySQL and PostgreSQL databases with web admin consoles"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production: specify allowed origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.k8s = None


# ============================================================================
# Startup/Shutdown Events
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize database and connections on startup"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    try:
        app.state.k8s = KubernetesManager.from_config(settings)
    except Exception as e:
        logger.error(f"Kubernetes unavailable, provisioning endpoints will answer 503: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down gracefully")


# ============================================================================
# Dependencies
# ============================================================================

def get_kubernetes() -> KubernetesManager:
    if app.state.k8s is None:
        raise HTTPException(status_code=503, detail="Kubernetes service not available")
    return app.state.k8s


# ============================================================================
# Error Mapping
# ============================================================================

def _status_for(error: DbaasError) -> int:
    if isinstance(error, (ProvisioningError, DecommissionError)):
        if isinstance(error.cause, (ResourceConflictError, ResourceNotFoundError, InvalidRequestError)):
            return _status_for(error.cause)
        return 502
    if isinstance(error, InvalidRequestError):
        return 400
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, (ResourceNotFoundError, UnknownDatabaseTypeError)):
        return 404
    if isinstance(error, ResourceConflictError):
        return 409
    if isinstance(error, (RoutingUnavailableError, NamespaceUnavailableError)):
        return 503
    return 500


@app.exception_handler(DbaasError)
async def dbaas_error_handler(request: Request, exc: DbaasError):
    body = {"detail": str(exc)}
    if isinstance(exc, (ProvisioningError, DecommissionError)):
        body["step"] = exc.step if isinstance(exc.step, str) else exc.step.value
        body["namespace"] = exc.namespace
        body["database_name"] = exc.database_name
    if isinstance(exc, ProvisioningError):
        body["last_completed_step"] = exc.last_completed_step.value
    return JSONResponse(status_code=_status_for(exc), content=body)


# ============================================================================
# Health Check Endpoints
# ============================================================================

@app.get("/health", response_model=HealthCheckResponse)
def health_check(db: Session = Depends(get_db)):
    """Detailed health check endpoint"""
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "error"

    try:
        if app.state.k8s is None:
            raise NamespaceUnavailableError("Kubernetes client not initialized")
        app.state.k8s.ping()
        k8s_status = "connected"
    except Exception as e:
        logger.error(f"Kubernetes health check failed: {e}")
        k8s_status = "error"

    return {
        "status": "ok" if db_status == "connected" and k8s_status == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "database": db_status,
        "kubernetes": k8s_status
    }


# ============================================================================
# Authentication Endpoints
# ============================================================================

@app.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """Register a tenant account"""
    store = CredentialStore(db, settings)
    user = store.register(
        username=request.username,
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
    )
    return {"user": UserResponse.model_validate(user), "token": store.create_access_token(user)}


@app.post("/auth/login", response_model=AuthResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate a tenant"""
    store = CredentialStore(db, settings)
    user = store.authenticate(request.username, request.password)
    return {"user": UserResponse.model_validate(user), "token": store.create_access_token(user)}


# ============================================================================
# Database Endpoints
# ============================================================================

@app.post("/databases", response_model=ProvisionResult, status_code=201)
def create_database(
    request: CreateDatabaseRequest,
    db: Session = Depends(get_db),
    k8s: KubernetesManager = Depends(get_kubernetes),
):
    """
    Provision a database and its admin console for a tenant.
    The tenant's username is the handle used to derive its namespace.
    """
    store = CredentialStore(db, settings)
    tenant = store.get_user(request.tenant_id)

    provision_request = ProvisionRequest(
        database_name=request.database_name,
        db_username=request.db_username,
        db_password=request.db_password,
        database_type=request.database_type,
        tenant_id=tenant.id,
        tenant_handle=tenant.username,
    )
    logger.info(
        f"CreateDatabase request: {request.database_name} ({request.database_type.value}) "
        f"for user {tenant.id}"
    )

    provisioner = DatabaseProvisioner(k8s, settings)
    planned = provisioner.describe(provision_request)
    # the record exists before any cluster object so a failure can be tracked
    store.record_database(planned, tenant.id)

    try:
        result = provisioner.provision(provision_request)
    except DbaasError:
        store.update_status(planned.namespace, planned.name, DatabaseStatus.ERROR)
        raise
    return result


@app.get("/users/{tenant_id}/databases", response_model=DatabaseRecordListResponse)
def list_user_databases(tenant_id: int, db: Session = Depends(get_db)):
    """Databases recorded for a tenant"""
    store = CredentialStore(db, settings)
    store.get_user(tenant_id)
    records = store.list_databases(tenant_id)
    return {
        "databases": [DatabaseRecordResponse.model_validate(r) for r in records],
        "total": len(records),
    }


@app.get("/namespaces", response_model=NamespaceListResponse)
def list_namespaces(k8s: KubernetesManager = Depends(get_kubernetes)):
    """All managed tenant namespaces"""
    namespaces = DatabaseLister(k8s, settings).list_namespaces()
    return {"namespaces": namespaces, "total": len(namespaces)}


@app.get("/namespaces/{namespace}/databases", response_model=DatabaseListResponse)
def list_namespace_databases(namespace: str, k8s: KubernetesManager = Depends(get_kubernetes)):
    """Databases deployed in a namespace"""
    databases = DatabaseLister(k8s, settings).list_databases(namespace)
    return {"namespace": namespace, "databases": databases, "count": len(databases)}


@app.patch("/namespaces/{namespace}/databases/{name}/status", response_model=DatabaseRecordResponse)
def update_database_status(
    namespace: str,
    name: str,
    request: StatusUpdateRequest,
    db: Session = Depends(get_db),
):
    """Caller-driven status update of a database record"""
    record = CredentialStore(db, settings).update_status(namespace, name, request.status)
    return DatabaseRecordResponse.model_validate(record)


@app.delete("/namespaces/{namespace}/databases/{name}", response_model=DecommissionResponse)
def delete_database(
    namespace: str,
    name: str,
    db: Session = Depends(get_db),
    k8s: KubernetesManager = Depends(get_kubernetes),
):
    """Decommission a database, then forget its record"""
    store = CredentialStore(db, settings)
    try:
        DatabaseDecommissioner(k8s, settings).decommission(name, namespace)
    except DecommissionError as e:
        # workload already gone: only the record is left to clear
        gone = e.step == DecommissionStep.READ_TYPE.value and isinstance(e.cause, ResourceNotFoundError)
        if not (gone and store.delete_database(namespace, name)):
            raise
        logger.info(f"Database workload {namespace}/{name} was already gone, removed its record")
    else:
        if not store.delete_database(namespace, name):
            logger.warning(f"No record stored for {namespace}/{name}")

    return {
        "name": name,
        "namespace": namespace,
        "status": "success",
        "message": f"Database '{name}' deleted successfully from namespace '{namespace}'",
    }


# ============================================================================
# Run Application
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
