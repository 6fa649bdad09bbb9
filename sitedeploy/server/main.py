"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
request tracing), registers the exception handlers and includes all API
routers. Its lifespan prepares the database, seeds the default parameters and
runs the build queue worker.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitedeploy import __version__
from sitedeploy.core.database import init_db
from sitedeploy.core.logging_config import get_logger, setup_logging
from sitedeploy.core.monitoring import initialize_logfire

from .api.v1 import (
    alerts,
    build_groups,
    env_variables,
    health,
    parameters,
    pm2_logs,
    queue,
    sites,
    users,
)
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers
from .middleware import LogfireMiddleware
from .services.deps import get_build_queue, get_parameter_store

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Startup prepares the database and the default parameters, then starts the
    build queue worker. Shutdown stops the worker; jobs still pending are
    dropped and their histories stay ``queued``.
    """
    logger.info("Starting up sitedeploy server...")
    try:
        await init_db()
        logger.info("Database initialized successfully")
        await get_parameter_store().seed_defaults()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    build_queue = get_build_queue()
    build_queue.start()

    yield

    logger.info("Shutting down sitedeploy server...")
    await build_queue.stop()


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    sitedeploy Server API

    Register the sites hosted on this machine, trigger their builds and follow
    the results: build histories, build logs, compiled .env files and PM2 logs.
    """,
    version=__version__,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

initialize_logfire(app)

app.add_middleware(LogfireMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=settings.cors.allow_methods,
    allow_headers=settings.cors.allow_headers,
)

setup_exception_handlers(app)

app.include_router(health.router, tags=["health"])
app.include_router(sites.router, prefix=f"{constant.API_V1_STR}/sites", tags=["sites"])
app.include_router(env_variables.router, prefix=f"{constant.API_V1_STR}/env-variables", tags=["env-variables"])
app.include_router(build_groups.router, prefix=f"{constant.API_V1_STR}/build-groups", tags=["build-groups"])
app.include_router(parameters.router, prefix=f"{constant.API_V1_STR}/parameters", tags=["parameters"])
app.include_router(users.router, prefix=f"{constant.API_V1_STR}/users", tags=["users"])
app.include_router(pm2_logs.router, prefix=f"{constant.API_V1_STR}/pm2-logs", tags=["pm2-logs"])
app.include_router(alerts.router, prefix=constant.API_V1_STR, tags=["alerts"])
app.include_router(queue.router, prefix=f"{constant.API_V1_STR}/queue", tags=["queue"])
