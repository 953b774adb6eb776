"""
Stand-alone receiver for Typebot form submissions.

Runs as its own ASGI app (uvicorn app.webhook:app) because it answers any
origin, unlike the panel API which only trusts the panel's origins.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from app.core.config import Settings, settings as default_settings
from app.core.dependencies import RepositoryFactory
from app.core.exceptions import CRMError
from app.services.lead_service import LeadService
from app.services.pipeline_service import PipelineRegistry
from app.workers.lead.lead_sync import sync_webhook_payload

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _ingest(repository_factory, payload: dict):
    repository = repository_factory()
    try:
        registry = PipelineRegistry(repository)
        registry.load()
        return sync_webhook_payload(LeadService(repository, registry), payload)
    finally:
        repository.close()


def create_webhook_app(settings: Settings = None, repository_factory=None) -> FastAPI:
    settings = settings or default_settings

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title="Lead CRM Webhook")
    app.state.repository_factory = repository_factory or RepositoryFactory(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

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

    async def receive(request: Request):
        try:
            payload = await request.json()
            if not isinstance(payload, dict):
                raise ValueError("Payload must be a JSON object")

            logger.info(f"📥 Received payload: {payload}")
            result = await run_in_threadpool(_ingest, app.state.repository_factory, payload)

            return JSONResponse(
                {"success": True, "leadId": result.lead.id, "isNew": result.is_new},
                headers=CORS_HEADERS,
            )

        except (CRMError, ValueError) as e:
            logger.error(f"❌ Webhook error: {e}")
            return JSONResponse({"error": str(e)}, status_code=500, headers=CORS_HEADERS)

        except Exception as e:
            logger.exception(f"❌ Unexpected webhook error: {e}")
            return JSONResponse({"error": str(e) or type(e).__name__}, status_code=500, headers=CORS_HEADERS)

    async def preflight(request: Request):
        return PlainTextResponse("ok", headers=CORS_HEADERS)

    for path in ("/", "/webhook/typebot"):
        app.add_api_route(path, receive, methods=["POST"])
        app.add_api_route(path, preflight, methods=["OPTIONS"], include_in_schema=False)

    return app


app = create_webhook_app()
