"""
medconsent - FastAPI Application
Exposes the consent engine operations: grants, delegation, templates and batches
"""

from fastapi import FastAPI, HTTPException
from contextlib import asynccontextmanager
from typing import Annotated, List, Optional
import logging
import structlog

from pydantic import AfterValidator, BaseModel, Field

from .config import get_consent_config
from .constants import Limits, SERVICE_NAME, SERVICE_VERSION
from .consent.manager import ConsentManager
from .exceptions import ConsentEngineError, ErrorKind
from .utils.validators import utf8_length

settings = get_consent_config()

log_level = logging.DEBUG if settings.debug_mode else getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(format="%(message)s", level=log_level)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Initialize services
consent_manager: Optional[ConsentManager] = None

STATUS_BY_KIND = {
    ErrorKind.NOT_AUTHORIZED: 403,
    ErrorKind.NOT_DELEGATED: 403,
    ErrorKind.CONSENT_EXPIRED_OR_INACTIVE: 403,
    ErrorKind.INVALID_CATEGORY: 400,
    ErrorKind.INVALID_DURATION: 400,
    ErrorKind.INVALID_TEMPLATE: 400,
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.TEMPLATE_NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.CAPACITY_EXCEEDED: 409,
    ErrorKind.AUDIT_FAILED: 503,
    ErrorKind.STORAGE: 500,
}


# =============================================================================
# REQUEST MODELS
# =============================================================================

def within_bytes(limit: int) -> AfterValidator:
    """Bound a string by its UTF-8 encoded length"""
    def check(value: str) -> str:
        if utf8_length(value) > limit:
            raise ValueError(f"must be at most {limit} bytes in UTF-8")
        return value
    return AfterValidator(check)


Principal = Annotated[str, Field(min_length=1), within_bytes(Limits.MAX_PRINCIPAL_LENGTH)]
Category = Annotated[str, Field(min_length=1), within_bytes(Limits.MAX_CATEGORY_LENGTH)]
Notes = Annotated[str, within_bytes(Limits.MAX_DETAILS_LENGTH)]


class GrantRequest(BaseModel):
    caller: Principal
    grantee: Principal
    category: Category
    duration: int = Field(..., ge=0)
    notes: Optional[Notes] = None


class DelegateGrantRequest(GrantRequest):
    granter: Principal


class RevokeRequest(BaseModel):
    caller: Principal
    grantee: Principal
    category: Category
    granter: Optional[Annotated[str, within_bytes(Limits.MAX_PRINCIPAL_LENGTH)]] = None


class RenewRequest(RevokeRequest):
    extra_duration: int = Field(..., ge=0)


class CategoryRequest(BaseModel):
    category: Annotated[str, within_bytes(Limits.MAX_CATEGORY_LENGTH)]


class DelegateRequest(BaseModel):
    caller: Principal
    delegate: Principal


class TemplateCreateRequest(BaseModel):
    caller: Principal
    name: Annotated[str, Field(min_length=1), within_bytes(Limits.MAX_TEMPLATE_NAME_LENGTH)]
    categories: List[str] = Field(default_factory=list)
    duration: int = Field(..., ge=0)
    description: Annotated[str, within_bytes(Limits.MAX_DESCRIPTION_LENGTH)] = ""


class TemplateApplyRequest(BaseModel):
    caller: Principal
    grantee: Principal


class BatchGrantRequest(BaseModel):
    caller: Principal
    grantee: Principal
    categories: List[str] = Field(default_factory=list, max_length=Limits.MAX_BATCH_CATEGORIES)
    duration: int = Field(..., ge=0)
    notes: Optional[Notes] = None


class BatchRevokeRequest(BaseModel):
    caller: Principal
    grantee: Principal
    categories: List[str] = Field(default_factory=list, max_length=Limits.MAX_BATCH_CATEGORIES)


class ClockAdvanceRequest(BaseModel):
    blocks: int = Field(default=1, ge=0)


# =============================================================================
# APPLICATION
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global consent_manager

    logger.info("Starting consent engine service", version=SERVICE_VERSION)

    # Initialize services only if not already provided (for testing/injection)
    if consent_manager is None:
        consent_manager = ConsentManager()

    logger.info("Consent services initialized")

    yield

    logger.info("Shutting down consent engine service")


app = FastAPI(
    title="medconsent",
    description="Consent management for personal health record categories",
    version=SERVICE_VERSION,
    lifespan=lifespan
)


def _require_manager() -> ConsentManager:
    if not consent_manager:
        raise HTTPException(status_code=503, detail="Consent manager not available")
    return consent_manager


def _http_error(exc: ConsentEngineError, operation: str) -> HTTPException:
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error("Consent operation failed", operation=operation, error=exc.message)
    else:
        logger.info("Consent operation rejected", operation=operation, error=exc.kind.value)
    return HTTPException(status_code=status_code, detail=exc.to_dict())


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "components": {
            "consent_manager": consent_manager is not None,
        },
    }


# -- consents ------------------------------------------------------------------

@app.post("/consents/grant")
async def grant_consent(request: GrantRequest):
    """Grant consent as the data owner"""
    manager = _require_manager()
    try:
        return await manager.grant(request.caller, request.grantee, request.category,
                                   request.duration, request.notes)
    except ConsentEngineError as e:
        raise _http_error(e, "grant")


@app.post("/consents/grant-as-delegate")
async def grant_consent_as_delegate(request: DelegateGrantRequest):
    """Grant consent on behalf of a data owner"""
    manager = _require_manager()
    try:
        return await manager.grant_as_delegate(request.caller, request.granter, request.grantee,
                                               request.category, request.duration, request.notes)
    except ConsentEngineError as e:
        raise _http_error(e, "grant-as-delegate")


@app.post("/consents/revoke")
async def revoke_consent(request: RevokeRequest):
    manager = _require_manager()
    try:
        return await manager.revoke(request.caller, request.grantee, request.category,
                                    granter=request.granter)
    except ConsentEngineError as e:
        raise _http_error(e, "revoke")


@app.post("/consents/renew")
async def renew_consent(request: RenewRequest):
    manager = _require_manager()
    try:
        return await manager.renew(request.caller, request.grantee, request.category,
                                   request.extra_duration, granter=request.granter)
    except ConsentEngineError as e:
        raise _http_error(e, "renew")


@app.get("/consents/{granter}/{grantee}/{category}/check")
async def check_consent(granter: str, grantee: str, category: str):
    """Check whether a consent is valid at the current logical time"""
    manager = _require_manager()
    try:
        return await manager.check(granter, grantee, category)
    except ConsentEngineError as e:
        raise _http_error(e, "check")


@app.get("/consents/{granter}/{grantee}/{category}/details")
async def get_consent_details(granter: str, grantee: str, category: str):
    manager = _require_manager()
    return await manager.get_details(granter, grantee, category)


@app.get("/consents/{granter}/{grantee}/{category}/history")
async def get_consent_history(granter: str, grantee: str, category: str):
    manager = _require_manager()
    return await manager.get_history(granter, grantee, category)


# -- categories ----------------------------------------------------------------

@app.post("/categories")
async def add_category(request: CategoryRequest):
    manager = _require_manager()
    try:
        return await manager.add_category(request.category)
    except ConsentEngineError as e:
        raise _http_error(e, "add-category")


@app.get("/categories")
async def list_categories():
    manager = _require_manager()
    return await manager.list_categories()


@app.get("/categories/{category}")
async def is_valid_category(category: str):
    manager = _require_manager()
    return await manager.is_valid_category(category)


# -- delegations ---------------------------------------------------------------

@app.post("/delegations/add")
async def add_delegate(request: DelegateRequest):
    manager = _require_manager()
    try:
        return await manager.add_delegate(request.caller, request.delegate)
    except ConsentEngineError as e:
        raise _http_error(e, "delegate-add")


@app.post("/delegations/remove")
async def remove_delegate(request: DelegateRequest):
    manager = _require_manager()
    try:
        return await manager.remove_delegate(request.caller, request.delegate)
    except ConsentEngineError as e:
        raise _http_error(e, "delegate-remove")


@app.get("/delegations/{granter}")
async def list_delegates(granter: str):
    manager = _require_manager()
    return await manager.list_delegates(granter)


# -- templates -----------------------------------------------------------------

@app.post("/templates")
async def create_template(request: TemplateCreateRequest):
    manager = _require_manager()
    try:
        return await manager.create_template(request.caller, request.name, request.categories,
                                             request.duration, request.description)
    except ConsentEngineError as e:
        raise _http_error(e, "template-create")


@app.get("/templates/{name}")
async def get_template(name: str):
    manager = _require_manager()
    return await manager.get_template(name)


@app.post("/templates/{name}/apply")
async def apply_template(name: str, request: TemplateApplyRequest):
    """Grant every category of a template; per-category outcomes are in the body"""
    manager = _require_manager()
    try:
        return await manager.apply_template(request.caller, request.grantee, name)
    except ConsentEngineError as e:
        raise _http_error(e, "template-apply")


# -- batches -------------------------------------------------------------------

@app.post("/batch/grant")
async def batch_grant(request: BatchGrantRequest):
    manager = _require_manager()
    try:
        return await manager.batch_grant(request.caller, request.grantee, request.categories,
                                         request.duration, request.notes)
    except ConsentEngineError as e:
        raise _http_error(e, "batch-grant")


@app.post("/batch/revoke")
async def batch_revoke(request: BatchRevokeRequest):
    manager = _require_manager()
    try:
        return await manager.batch_revoke(request.caller, request.grantee, request.categories)
    except ConsentEngineError as e:
        raise _http_error(e, "batch-revoke")


# -- logical clock -------------------------------------------------------------

@app.get("/clock")
async def get_clock():
    manager = _require_manager()
    return await manager.get_clock()


@app.post("/clock/advance")
async def advance_clock(request: ClockAdvanceRequest):
    """Advance the externally supplied logical clock"""
    manager = _require_manager()
    try:
        return await manager.advance_clock(request.blocks)
    except ConsentEngineError as e:
        raise _http_error(e, "clock-advance")


# =============================================================================
# ROOT ENDPOINT
# =============================================================================

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "medconsent consent engine",
        "version": SERVICE_VERSION,
        "status": "operational",
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
