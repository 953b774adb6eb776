import sys
import os

# Ensure project root is in path
sys.path.append(os.getcwd())

from app.core.config import settings
from app.core.dependencies import RepositoryFactory
from app.services.pipeline_service import PipelineRegistry, DEFAULT_STAGES


def seed_pipeline(repository) -> bool:
    """Writes the default stages when the store has none; returns True if it seeded."""
    if repository.list_pipeline_stages():
        print("✅ Pipeline stages already configured, nothing to do.")
        return False

    PipelineRegistry(repository).save(DEFAULT_STAGES)
    print(f"🎉 Seeded {len(DEFAULT_STAGES)} default pipeline stages.")
    return True


def main():
    factory = RepositoryFactory(settings)
    factory.init_store()
    repository = factory()
    try:
        seed_pipeline(repository)
    finally:
        repository.close()
        factory.close()


if __name__ == "__main__":
    main()
