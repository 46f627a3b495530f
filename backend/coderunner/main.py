#!/usr/bin/env python3
"""
Code Runner - Main FastAPI Application

Runs submitted programs in isolated Docker containers and streams their I/O.
"""

import argparse
import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Add the backend directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
backend_dir = os.path.dirname(current_dir)

if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

# Import application configurations and components
from coderunner.config import ServerConfig, get_settings
from coderunner.config.logging_config import LoggingConfig
from coderunner.utils.exceptions import register_exception_handlers
from coderunner.schemas import HealthResponse
from coderunner.service import ExecutionService, get_execution_service

# Import API routers
from coderunner.api import execution_router, execution_ws_router

# Initialize logging
LoggingConfig().setup_logging()

# Initialize logger (after logging setup)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle

    - Startup: report whether the Docker engine is reachable
    - Shutdown: stop the run worker pools
    """
    # Startup
    logger.info("=" * 80)
    logger.info("Starting Code Runner...")
    logger.info("=" * 80)

    service = get_execution_service()
    if await asyncio.to_thread(service.runtime.check_available):
        logger.info("Docker engine reachable")
    else:
        logger.warning("Docker engine not reachable; runs will end with ERROR until it is")

    settings = get_settings()
    logger.info(
        f"Limits: timeout={settings.executor_timeout_seconds}s, "
        f"max_concurrent_runs={settings.executor_max_concurrent_runs}, "
        f"memory={settings.executor_memory_bytes} bytes"
    )
    logger.info("Application startup complete")
    logger.info(f"Server URL: http://{settings.host}:{settings.port}")
    logger.info(f"Documentation: http://{settings.host}:{settings.port}/docs")
    logger.info(f"Health Check: http://{settings.host}:{settings.port}/health")
    logger.info("=" * 80)

    yield

    # Shutdown
    logger.info("Shutting down application...")
    try:
        service.shutdown()
        logger.info("Execution service stopped")
    except Exception as e:
        logger.error(f"Error stopping execution service: {e}")

    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version="1.0.0",
        description="Containerized multi-language code execution with streaming I/O",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add CORS middleware (must be first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register global exception handlers
    register_exception_handlers(app)

    # Include routers
    app.include_router(execution_router, prefix="/api")
    app.include_router(execution_ws_router)

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health(service: ExecutionService = Depends(get_execution_service)):
        """Liveness plus Docker reachability and admission usage"""
        docker_ok = await asyncio.to_thread(service.runtime.check_available)
        return HealthResponse(
            docker=docker_ok,
            active_runs=len(service.registry),
            admission={"capacity": service.gate.capacity, "inUse": service.gate.in_use},
        )

    return app


def run_api(host: str, port: int, **kwargs):
    """
    Run the API server with the given configuration
    """
    try:
        uvicorn.run(
            "coderunner.main:app",
            host=host,
            port=port,
            reload=kwargs.get("reload") or ServerConfig.RELOAD
        )
    except Exception as e:
        logger.error(f"Failed to start API server: {e}")
        raise


def main() -> None:
    """
    Code Runner entry point
    """
    parser = argparse.ArgumentParser(prog='coderunner',
                                     description='Code Runner Server')
    parser.add_argument("--host", type=str, default=get_settings().host)
    parser.add_argument("--port", type=int, default=get_settings().port)
    parser.add_argument("--reload", action="store_true", default=ServerConfig.RELOAD)

    args = parser.parse_args()

    try:
        logger.info("=" * 80)
        logger.info("Starting Code Runner Server...")
        logger.info("=" * 80)
        logger.info(f"  - Server URL: http://{args.host}:{args.port}")
        logger.info(f"  - Documentation: http://{args.host}:{args.port}/docs")
        logger.info(f"  - Health Check: http://{args.host}:{args.port}/health")
        logger.info("=" * 80)

        run_api(
            host=args.host,
            port=args.port,
            reload=args.reload
        )
    except KeyboardInterrupt:
        logger.info("Shutting down Code Runner gracefully...")
    except Exception as e:
        logger.error(f"Application startup failed: {e}")
        sys.exit(1)


# Create the app instance
app = create_app()

if __name__ == "__main__":
    main()
