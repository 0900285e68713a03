import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
import uvicorn

from store_orchestrator.api.stores import router as stores_router
from store_orchestrator.core.config import Settings, get_settings
from store_orchestrator.core.logs import configure_logging
from store_orchestrator.schemas.health import HealthResponse
from store_orchestrator.services.container import Services, build_services
from store_orchestrator.services.readiness import ReadinessService
from store_orchestrator.workers.provisioner import ProvisioningWorker

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    settings = settings or get_settings()
    services = services or build_services(settings)

    app = FastAPI(title="Store Orchestrator", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(stores_router)

    app.state.services = services
    app.state.worker = None
    app.state.worker_task = None

    @app.on_event("startup")
    async def startup_event() -> None:
        configure_logging(settings.log_level)
        services.database.init()
        logger.info("Environment: %s, engines: %s", settings.environment, ", ".join(services.catalog.names()))
        if settings.run_worker:
            worker = ProvisioningWorker(
                settings,
                services.database,
                services.queue,
                services.catalog,
                services.driver,
                readiness=ReadinessService(),
            )
            app.state.worker = worker
            app.state.worker_task = asyncio.create_task(worker.start())

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        worker: ProvisioningWorker | None = app.state.worker
        if worker:
            worker.stop()
            await worker.drain()
            if worker.readiness:
                worker.readiness.close()
        if app.state.worker_task:
            app.state.worker_task.cancel()
        services.database.dispose()

    @app.get("/healthz", response_model=HealthResponse)
    def healthz() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
