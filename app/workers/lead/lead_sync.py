import logging
from datetime import datetime

from app.core.exceptions import CRMError, StoreError
from app.schemas.ingestion import IngestionResult, ImportSummary
from app.schemas.lead import LeadIn
from app.workers.lead.deduplicator import find_existing
from app.workers.lead.normalizer import (
    map_profile,
    map_operation,
    determine_tags,
    interest_tags,
    parse_submitted_at,
    clean_text,
    build_notes,
    build_csv_notes,
)

logger = logging.getLogger(__name__)

# Header spellings seen in Typebot exports and webhook bodies, first present wins
SUBMITTED_AT_KEYS = ("submitted_at", "submittedAt", "Submitted at", "Criado em")


def _submitted_at(payload, now=None) -> datetime:
    for key in SUBMITTED_AT_KEYS:
        if payload.get(key):
            return parse_submitted_at(payload[key], now=now)
    return parse_submitted_at(None, now=now)


def map_payload_to_lead(payload: dict, now: datetime = None) -> LeadIn:
    payload = payload or {}
    return LeadIn(
        name=clean_text(payload.get("nome")) or "Sem nome",
        email=payload.get("email"),
        phone=payload.get("telefone"),
        location=clean_text(payload.get("localizacao")) or clean_text(payload.get("outra_localizacao")),
        capital=payload.get("capital"),
        profile=map_profile(payload.get("perfil_operador")),
        operation=map_operation(payload.get("perfil_operador")),
        interest=payload.get("atracao"),
        source=payload.get("origem_lead"),
        notes=build_notes(payload) or None,
        submitted_at=_submitted_at(payload, now=now),
    )


# ---------------------------------------------------------
# 1. WEBHOOK (upsert)
# ---------------------------------------------------------
def sync_webhook_payload(service, payload: dict) -> IngestionResult:
    fields = map_payload_to_lead(payload)
    tags = determine_tags(payload)

    result = service.upsert(fields, tags, channel="Webhook")

    if result.warnings:
        logger.warning(f"⚠️ Webhook lead {result.lead.id} saved with {len(result.warnings)} warning(s)")
    return result


# ---------------------------------------------------------
# 2. CSV (skip duplicates)
# ---------------------------------------------------------
def import_csv_rows(service, rows) -> ImportSummary:
    """
    Rows are dicts keyed by the CSV header. Existing leads (email, then
    phone) are left untouched; a failing row is counted and the import goes on.
    """
    summary = ImportSummary()

    for row in rows:
        name = clean_text(row.get("nome"))
        if not name:
            logger.info("⏭️ Skipping row without name")
            summary.skipped += 1
            continue

        try:
            fields = map_payload_to_lead(row)
            fields = fields.model_copy(update={"notes": build_csv_notes(row) or None})

            existing = find_existing(service.repository, fields.email, fields.phone)
            if existing:
                logger.info(f"⏭️ Lead already exists: {name} [{existing.id}]")
                summary.skipped += 1
                continue

            lead = service.create(fields, activity_content="Lead importado via CSV")

            specs = determine_tags(row) + interest_tags(row.get("atracao"))
            if specs:
                try:
                    service.sync_tags(lead.id, specs)
                except StoreError as e:
                    logger.warning(f"⚠️ Tags for {name} not saved: {e}")

            logger.info(f"✅ Imported: {name}")
            summary.imported += 1

        except (CRMError, ValueError) as e:
            # ValueError: pydantic rejected a malformed row
            logger.error(f"❌ Failed to import {name}: {e}")
            summary.failed += 1

    logger.info(
        f"📊 CSV import done: {summary.imported} imported, "
        f"{summary.skipped} skipped, {summary.failed} failed"
    )
    return summary
