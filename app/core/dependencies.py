import logging

from fastapi import Depends, Request
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings
from app.core.database import Base, build_engine
from app.repositories.base import LeadRepository
from app.repositories.sql_repository import SqlLeadRepository
from app.repositories.pocketbase_repository import PocketBaseClient, PocketBaseLeadRepository
from app.repositories.supabase_repository import SupabaseClient, SupabaseLeadRepository
from app.services.lead_service import LeadService
from app.services.pipeline_service import PipelineRegistry

logger = logging.getLogger(__name__)

BACKENDS = ("sql", "pocketbase", "supabase")


class RepositoryFactory:
    """
    Builds the store client once (engine + sessionmaker, or one authenticated
    HTTP session) and hands out a repository per unit of work.
    """

    def __init__(self, settings: Settings):
        self.backend = settings.STORE_BACKEND
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown STORE_BACKEND '{self.backend}', expected one of {BACKENDS}")

        self.engine = None
        self.client = None

        if self.backend == "sql":
            self.engine = build_engine(settings.DATABASE_URL)
            self.session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        elif self.backend == "pocketbase":
            self.client = PocketBaseClient(
                settings.POCKETBASE_URL,
                email=settings.POCKETBASE_EMAIL,
                password=settings.POCKETBASE_PASSWORD,
                timeout=settings.REQUEST_TIMEOUT,
            )
        else:
            if not (settings.SUPABASE_URL and settings.SUPABASE_KEY):
                raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the supabase store")
            self.client = SupabaseClient(settings.SUPABASE_URL, settings.SUPABASE_KEY, timeout=settings.REQUEST_TIMEOUT)

    def init_store(self):
        if self.engine is not None:
            Base.metadata.create_all(bind=self.engine)
            logger.info("✅ SQL tables ready")
        elif isinstance(self.client, PocketBaseClient):
            self.client.authenticate()
        logger.info(f"🗄️ Lead store: {self.backend}")

    def __call__(self) -> LeadRepository:
        if self.backend == "sql":
            return SqlLeadRepository(self.session_factory())
        if self.backend == "pocketbase":
            return PocketBaseLeadRepository(self.client)
        return SupabaseLeadRepository(self.client)

    def close(self):
        if self.client is not None:
            self.client.close()
        if self.engine is not None:
            self.engine.dispose()


# ---------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------
def get_repository(request: Request):
    repository = request.app.state.repository_factory()
    try:
        yield repository
    finally:
        repository.close()


def get_registry(repository: LeadRepository = Depends(get_repository)) -> PipelineRegistry:
    registry = PipelineRegistry(repository)
    registry.load()
    return registry


def get_lead_service(
    repository: LeadRepository = Depends(get_repository),
    registry: PipelineRegistry = Depends(get_registry),
) -> LeadService:
    return LeadService(repository, registry)
