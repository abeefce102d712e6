import logging

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coderun.config import get_settings
from coderun.controllers.execute import router as execute_router
from coderun.controllers.health import router as health_router
from coderun.errors import register_exception_handlers
from coderun.lifespan import cleanup_resources, setup_resources
from coderun.middleware import HTTPLogMiddleware

settings = get_settings()

app = FastAPI(title="coderun", version="1.0.0")
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_origin_regex=settings.cors.origins_regex or None,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.debug.request:
    logging.getLogger("coderun.http").setLevel(logging.DEBUG)
    app.add_middleware(HTTPLogMiddleware)

if settings.execution.debug_trace:
    logging.getLogger("coderun").setLevel(logging.DEBUG)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    resources = await setup_resources()
    try:
        yield
    finally:
        await cleanup_resources(resources)

app.router.lifespan_context = lifespan

app.include_router(health_router)
app.include_router(execute_router)
