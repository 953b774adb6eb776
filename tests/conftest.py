import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.database import Base
from app.main import create_app
from app.repositories.sql_repository import SqlLeadRepository
from app.services.lead_service import LeadService
from app.services.pipeline_service import PipelineRegistry
from app.webhook import create_webhook_app



@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def repository(session_factory):
    repo = SqlLeadRepository(session_factory())
    yield repo
    repo.close()


@pytest.fixture
def registry(repository):
    registry = PipelineRegistry(repository)
    registry.load()
    return registry


@pytest.fixture
def service(repository, registry):
    return LeadService(repository, registry)


@pytest.fixture
def settings():
    return Settings(STORE_BACKEND="sql", DATABASE_URL="sqlite://", CORS_ORIGINS=["http://localhost:5173"])


@pytest.fixture
def repository_factory(session_factory):
    return lambda: SqlLeadRepository(session_factory())


@pytest.fixture
def client(settings, repository_factory):
    app = create_app(settings, repository_factory=repository_factory)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def webhook_client(settings, repository_factory):
    app = create_webhook_app(settings, repository_factory=repository_factory)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def typebot_payload():
    return {
        "nome": "Maria Souza",
        "email": "maria@example.com",
        "telefone": "+5527999450904",
        "localizacao": "Vitória - ES",
        "capital": "Acima de R$ 500 mil",
        "perfil_operador": "Quero ser investidor",
        "origem_lead": "Instagram",
        "atracao": "Marca, Retorno",
        "visao_cliente": "Negócio escalável",
        "prazo": "Nos próximos 3 meses",
        "confirmacao": "Confirmado",
        "submitted_at": "2026-01-08T23:20:00Z",
    }
