"""
FastAPI Application Entry Point

Party food reservation backend. Guests identify themselves with name +
phone, see the food list and reserve or cancel one unit of a dish. All rows
live in the remote Supabase tables (or the in-memory mock in development).

Endpoints:
    - POST /usuarios: Register or log in
    - POST /comidas-usuario: Food list annotated for the caller
    - POST /comidas/{comida_id}/reservar: Reserve one unit
    - POST /comidas/{comida_id}/cancelar: Cancel the caller's reservation
    - GET /health: System health check

Run with:
    uvicorn festa.main:app --port 3000

Version: 1.0.0
"""

import logging
from datetime import datetime
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Depends, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from festa.core.config import get_settings, setup_logging
from festa.core.exceptions import (
    MISSING_IDENTITY_MESSAGE,
    FestaError,
    MissingIdentityError,
    ServerError,
)
from festa.schemas import (
    CancelResponse,
    ComidasResponse,
    ErrorResponse,
    HealthResponse,
    IdentityRequest,
    RegisterResponse,
    ReserveResponse,
)
from festa.services.datastore import get_datastore
from festa.services.reservations import ReservationService, get_reservation_service

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    datastore = get_datastore()
    logger.info(f"Datastore: {datastore.provider_name}")
    logger.info(f"Sheet export: {'on' if settings.excel_export_enabled else 'off'}")
    logger.info("Application ready")

    yield

    logger.info("Shutting down...")
    await datastore.close()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Party food list: guests register with name and phone, then reserve "
        "or cancel one unit of each dish."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# The frontend is served from anywhere during the party
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def require_identity(payload: IdentityRequest) -> IdentityRequest:
    """Reject calls without both name and phone."""
    if not payload.is_complete:
        raise MissingIdentityError()
    return payload


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    service: ReservationService = Depends(get_reservation_service),
) -> HealthResponse:
    """Verify the datastore and the export broker are reachable."""

    datastore_status = (
        "healthy" if await service.datastore.health_check() else "unhealthy"
    )

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except redis.RedisError as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    overall = "operational" if all(
        s == "healthy" for s in [datastore_status, redis_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        datastore=datastore_status,
        redis=redis_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# USER ENDPOINTS
# =============================================================================

@app.post(
    "/usuarios",
    response_model=RegisterResponse,
    responses=ERROR_RESPONSES,
    tags=["Usuarios"],
    summary="Register or log in",
)
async def register_user(
    identity: IdentityRequest = Depends(require_identity),
    service: ReservationService = Depends(get_reservation_service),
) -> RegisterResponse:
    """
    Register a guest by name + phone, or log in if the pair already exists.

    A phone registered under another name, or a name registered under
    another phone, is rejected.
    """
    try:
        usuario = await service.register(identity.nome, identity.telefone)
    except FestaError:
        raise
    except Exception as e:
        logger.exception(f"Error validating or registering user: {e}")
        raise ServerError("Erro ao validar ou registrar usuário")

    return RegisterResponse(usuario=usuario.to_dict())


# =============================================================================
# FOOD ENDPOINTS
# =============================================================================

@app.post(
    "/comidas-usuario",
    response_model=ComidasResponse,
    responses=ERROR_RESPONSES,
    tags=["Comidas"],
    summary="Food list for the caller",
)
async def list_foods_for_user(
    identity: IdentityRequest = Depends(require_identity),
    service: ReservationService = Depends(get_reservation_service),
) -> ComidasResponse:
    """Foods by name, with who reserved each one and whether the caller did."""
    try:
        usuario = await service.authenticate(identity.nome, identity.telefone)
        comidas = await service.list_foods_for(usuario)
    except FestaError:
        raise
    except Exception as e:
        logger.exception(f"Error in /comidas-usuario: {e}")
        raise ServerError("Erro ao buscar comidas e reservas")

    return ComidasResponse(comidas=comidas)


@app.post(
    "/comidas/{comida_id}/reservar",
    response_model=ReserveResponse,
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}},
    tags=["Comidas"],
    summary="Reserve one unit",
)
async def reserve_food(
    comida_id: str,
    identity: IdentityRequest = Depends(require_identity),
    service: ReservationService = Depends(get_reservation_service),
) -> ReserveResponse:
    """Reserve one unit of a dish for the caller."""
    try:
        usuario = await service.authenticate(identity.nome, identity.telefone)
        reserva, comida = await service.reserve(usuario, comida_id)
    except FestaError:
        raise
    except Exception as e:
        logger.exception(f"Error reserving food {comida_id}: {e}")
        raise ServerError("Erro ao reservar comida")

    return ReserveResponse(reserva=reserva.to_dict(), comida=comida.to_dict())


@app.post(
    "/comidas/{comida_id}/cancelar",
    response_model=CancelResponse,
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}},
    tags=["Comidas"],
    summary="Cancel a reservation",
)
async def cancel_reservation(
    comida_id: str,
    identity: IdentityRequest = Depends(require_identity),
    service: ReservationService = Depends(get_reservation_service),
) -> CancelResponse:
    """Cancel the caller's reservation of a dish and give the unit back."""
    try:
        usuario = await service.authenticate(identity.nome, identity.telefone)
        comida = await service.cancel(usuario, comida_id)
    except FestaError:
        raise
    except Exception as e:
        logger.exception(f"Error cancelling reservation of food {comida_id}: {e}")
        raise ServerError("Erro ao cancelar reserva")

    return CancelResponse(comida=comida.to_dict())


@app.options("/{path:path}", include_in_schema=False)
async def options_handler(path: str) -> Response:
    """Answer bare OPTIONS requests that are not CORS preflights."""
    return Response(status_code=200)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(FestaError)
async def festa_exception_handler(request: Request, exc: FestaError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed or missing bodies are reported like missing fields."""
    logger.debug(f"Invalid request body on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": MISSING_IDENTITY_MESSAGE})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc) if settings.debug else "Erro interno do servidor",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("festa.main:app", host=settings.api_host, port=settings.api_port)
