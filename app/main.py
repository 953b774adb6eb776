import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import leads, tags, pipeline, reports
from app.core.config import Settings, settings as default_settings
from app.core.dependencies import RepositoryFactory
from app.core.exceptions import ValidationError, StoreError, RecordNotFound

logger = logging.getLogger(__name__)


def create_app(settings: Settings = None, repository_factory=None) -> FastAPI:
    settings = settings or default_settings

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title="Lead CRM Backend")
    app.state.settings = settings
    app.state.repository_factory = repository_factory or RepositoryFactory(settings)

    # -------------------------
    # CORS (panel front end)
    # -------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------
    # Include Routers
    # -------------------------
    app.include_router(leads.router)
    app.include_router(tags.router)
    app.include_router(pipeline.router)
    app.include_router(reports.router)

    # -------------------------
    # Error mapping
    # -------------------------
    @app.exception_handler(ValidationError)
    def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RecordNotFound)
    def not_found(request: Request, exc: RecordNotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    def store_error(request: Request, exc: StoreError):
        logger.error(f"❌ Store error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"detail": "The lead store is unavailable, try again"})

    # -------------------------
    # FastAPI lifecycle
    # -------------------------
    @app.on_event("startup")
    def startup():
        init_store = getattr(app.state.repository_factory, "init_store", None)
        if init_store:
            init_store()

    @app.on_event("shutdown")
    def shutdown():
        close = getattr(app.state.repository_factory, "close", None)
        if close:
            close()

    @app.get("/")
    def root():
        return {"status": "running"}

    return app


app = create_app()
