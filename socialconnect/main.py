"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from socialconnect import __version__
from socialconnect.config import get_settings
from socialconnect.database import create_tables
from socialconnect.errors import NotAuthorizedError
from socialconnect.routers import auth_router, connect_router, signin_router
from socialconnect.services.social import (
    build_authentication_service_registry,
    build_connection_factory_registry,
)

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup: create database tables
    await create_tables()
    yield


app = FastAPI(
    title=settings.app_name,
    description="Provider sign-in and account connections over OAuth 1 and OAuth 2",
    version=__version__,
    lifespan=lifespan,
)

app.state.connection_factory_registry = build_connection_factory_registry(settings)
app.state.authentication_service_registry = build_authentication_service_registry(
    app.state.connection_factory_registry,
    settings,
)
# ConnectInterceptor and DisconnectInterceptor hooks for the connect router
app.state.connect_interceptors = []
app.state.disconnect_interceptors = []

# Holds the user id, OAuth request tokens/state and pending sign-in attempts
app.add_middleware(SessionMiddleware, secret_key=settings.secret_key)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with /api/v1 prefix
app.include_router(auth_router, prefix="/api/v1")
app.include_router(connect_router, prefix="/api/v1")
app.include_router(signin_router, prefix="/api/v1")


@app.exception_handler(NotAuthorizedError)
async def reconnect_on_not_authorized(request: Request, exc: NotAuthorizedError):
    """Send the user through the connect flow again when a provider rejects the stored credential."""
    logger.info("%s rejected the stored credential: %s", exc.provider_id, exc)
    if exc.provider_id is None:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": str(exc)},
        )
    return RedirectResponse(
        f"{settings.connect_status_url}/{exc.provider_id}?reconnect=true",
        status_code=status.HTTP_303_SEE_OTHER,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
