import sys
import os

# Ensure project root is in path
sys.path.append(os.getcwd())

from app.core.config import settings
from app.core.dependencies import RepositoryFactory
from app.core.exceptions import CRMError
from app.workers.lead.normalizer import map_source, SOURCES


def fix_sources(repository) -> dict:
    """Re-runs map_source over every stored source that is not canonical yet."""
    leads = repository.list_leads()
    print(f"📊 Found {len(leads)} leads.")

    updated, errors = 0, 0
    for lead in leads:
        if lead.source in SOURCES:
            continue

        normalized = map_source(lead.source)
        print(f"🔧 Updating lead {lead.name} ({lead.id}): \"{lead.source}\" -> \"{normalized}\"")
        try:
            fields = lead.to_input().model_copy(update={"source": normalized})
            repository.update_lead(lead.id, fields, lead.status)
            updated += 1
        except (CRMError, ValueError) as e:
            print(f"❌ Failed to update lead {lead.id}: {e}")
            errors += 1

    return {"updated": updated, "errors": errors, "unchanged": len(leads) - updated - errors}


def main():
    factory = RepositoryFactory(settings)
    factory.init_store()
    repository = factory()
    print("🚀 Starting lead source normalization...")
    try:
        result = fix_sources(repository)
    finally:
        repository.close()
        factory.close()

    print("-----------------------------------")
    print(f"Updated: {result['updated']}")
    print(f"Errors: {result['errors']}")
    print(f"Unchanged: {result['unchanged']}")


if __name__ == "__main__":
    main()
