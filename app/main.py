import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from app.api import addon_routes, menu_routes, order_routes, table_routes
from app.api.deps import get_store
from app.core.config import get_settings
from app.core.errors import (
    NotFound,
    PartialOrderCreation,
    PartialWriteFailure,
    StoreUnavailable,
    ValidationFailure,
)
from app.db import create_db_and_tables

load_dotenv()

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

# Create the FastAPI app
app = FastAPI()


# Swagger Bearer token support for "Authorize" button
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Restaurant Data API",
        version="1.0.0",
        description="Menu catalog, add-on groups, tables and order lifecycle for restaurants.",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT"
        }
    }
    for path in openapi_schema["paths"].values():
        for operation in path.values():
            operation["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

# Allow frontend dev (CORS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----- Error mapping
@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc), "entity": exc.entity})


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(status_code=422, content={"detail": exc.message, "field": exc.field})


@app.exception_handler(PartialWriteFailure)
async def partial_write_handler(request: Request, exc: PartialWriteFailure):
    content = {
        "detail": str(exc),
        "operation": exc.operation,
        "phase": exc.phase,
        "committed": jsonable_encoder(exc.committed),
    }
    if isinstance(exc, PartialOrderCreation):
        content["order_id"] = exc.order_id
    return JSONResponse(status_code=409, content=content)


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    log.error("store unavailable: %s %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.on_event("startup")
async def on_startup():
    log.info("Starting DB setup...")
    await create_db_and_tables(get_store().engine)
    log.info("DB schema ready.")


@app.on_event("shutdown")
async def on_shutdown():
    store = get_store()
    if store.feed is not None:
        store.feed.close()
    await store.engine.dispose()


@app.get("/health")
async def health():
    return {"status": "ok"}


# Core app routers
app.include_router(menu_routes.router)
app.include_router(addon_routes.router)
app.include_router(table_routes.router)
app.include_router(order_routes.router)
