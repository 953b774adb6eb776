import csv
import sys
import os

# Ensure project root is in path
sys.path.append(os.getcwd())

from app.core.config import settings
from app.core.dependencies import RepositoryFactory
from app.services.lead_service import LeadService
from app.services.pipeline_service import PipelineRegistry
from app.workers.lead.lead_sync import import_csv_rows


def read_rows(path: str) -> list:
    # utf-8-sig drops the BOM Typebot puts in front of the header
    with open(path, newline="", encoding="utf-8-sig") as f:
        return [row for row in csv.DictReader(f) if any((v or "").strip() for v in row.values())]


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/import_csv.py <typebot-export.csv>")
        sys.exit(1)

    path = sys.argv[1]
    if not os.path.exists(path):
        print(f"❌ CSV file not found: {path}")
        sys.exit(1)

    rows = read_rows(path)
    print(f"📊 Found {len(rows)} records in CSV.")

    factory = RepositoryFactory(settings)
    factory.init_store()
    repository = factory()
    try:
        registry = PipelineRegistry(repository)
        registry.load()
        summary = import_csv_rows(LeadService(repository, registry), rows)
    finally:
        repository.close()
        factory.close()

    print("\nImport Summary:")
    print(f"✅ Imported: {summary.imported}")
    print(f"⏭️ Skipped (duplicate or no name): {summary.skipped}")
    print(f"❌ Failed: {summary.failed}")


if __name__ == "__main__":
    main()
