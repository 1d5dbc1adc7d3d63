import logging
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gold_monitor.engine.runtime import MonitorRuntime, build_runtime
from gold_monitor.logging_utils import EndpointFilter
from gold_monitor.settings import Settings
from gold_monitor.web.routes import router

logger = logging.getLogger("gold_monitor.web")

RuntimeFactory = Callable[[Settings], Awaitable[MonitorRuntime]]


def create_app(settings: Settings, *, runtime_factory: RuntimeFactory = build_runtime) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Suppress uvicorn access logs for polling endpoints
        logging.getLogger("uvicorn.access").addFilter(EndpointFilter("/api/status"))

        logger.info("Starting gold monitor...")
        runtime = await runtime_factory(settings)
        app.state.runtime = runtime
        runtime.launch()
        logger.info("Monitor task started")
        try:
            yield
        finally:
            logger.info("Shutting down...")
            await runtime.aclose()
            logger.info("Gold monitor stopped")

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
