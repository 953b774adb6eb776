import sys
import os

# Ensure project root is in path
sys.path.append(os.getcwd())

from app.core.config import settings
from app.core.dependencies import RepositoryFactory
from app.core.exceptions import StoreError


def main():
    factory = RepositoryFactory(settings)
    factory.init_store()
    repository = factory()
    try:
        leads = repository.list_leads()
    except StoreError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)
    finally:
        repository.close()
        factory.close()

    print(f"📊 Total leads: {len(leads)}")
    print("🕒 Most recent:")
    for lead in leads[:3]:
        print(f"  - {lead.name} ({lead.submitted_at or lead.created_at})")


if __name__ == "__main__":
    main()
