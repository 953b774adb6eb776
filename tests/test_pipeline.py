import pytest

from app.core.exceptions import StoreError, ValidationError
from app.schemas.pipeline import PipelineStage
from app.services.pipeline_service import PipelineRegistry, DEFAULT_STAGES


class BrokenStore:
    def list_pipeline_stages(self):
        raise StoreError("store unreachable")


def test_empty_store_falls_back_to_defaults(registry):
    assert registry.is_default
    assert registry.stage_ids() == ["novo", "contato", "qualificado", "proposta", "negociacao", "ganho", "perdido"]
    assert registry.first_stage_id() == "novo"


def test_unreachable_store_falls_back_silently():
    registry = PipelineRegistry(BrokenStore())
    stages = registry.load()
    assert [s.id for s in stages] == [s.id for s in DEFAULT_STAGES]
    assert registry.is_default


def test_saved_stages_replace_defaults_wholesale(repository):
    registry = PipelineRegistry(repository)
    registry.save([
        PipelineStage(id="lead", title="Lead", color="bg-a"),
        PipelineStage(id="call", title="Ligação", color="bg-b"),
        PipelineStage(id="fechado", title="Fechado", color="bg-c"),
    ])

    reloaded = PipelineRegistry(repository)
    stages = reloaded.load()
    assert [s.id for s in stages] == ["lead", "call", "fechado"]
    assert [s.order_index for s in stages] == [0, 1, 2]
    assert not reloaded.is_default
    assert not reloaded.contains("novo")


def test_save_rejects_duplicates_and_empty(registry):
    with pytest.raises(ValidationError):
        registry.save([])
    with pytest.raises(ValidationError):
        registry.save([PipelineStage(id="a", title="A"), PipelineStage(id="a", title="B")])


def test_adjacent(registry):
    assert registry.adjacent("contato", "left") == "novo"
    assert registry.adjacent("contato", "right") == "qualificado"
    assert registry.adjacent("novo", "left") is None
    assert registry.adjacent("perdido", "right") is None
    assert registry.adjacent("unknown", "right") is None
    with pytest.raises(ValidationError):
        registry.adjacent("novo", "up")


def test_title_for_falls_back_to_id(registry):
    assert registry.title_for("negociacao") == "Negociação"
    assert registry.title_for("arquivado") == "arquivado"
