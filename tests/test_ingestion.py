from datetime import datetime

from app.workers.lead.lead_sync import map_payload_to_lead, sync_webhook_payload, import_csv_rows

NOW = datetime(2026, 1, 9, 12, 0)


def test_map_payload_to_lead(typebot_payload):
    lead = map_payload_to_lead(typebot_payload, now=NOW)

    assert lead.name == "Maria Souza"
    assert lead.email == "maria@example.com"
    assert lead.phone == "+5527999450904"
    assert lead.location == "Vitória - ES"
    assert lead.profile == "investidor"
    assert lead.operation == "investidor"
    assert lead.interest == "Marca, Retorno"
    assert lead.source == "instagram"
    assert lead.status is None
    assert lead.submitted_at == datetime(2026, 1, 8, 23, 20)
    assert lead.notes.startswith("Visão: Negócio escalável\n\nAtração: Marca, Retorno")


def test_map_payload_defaults():
    lead = map_payload_to_lead({"email": "x", "outra_localizacao": "Lisboa", "Criado em": "8 de jan., 23:20"}, now=NOW)

    assert lead.name == "Sem nome"
    assert lead.email is None
    assert lead.location == "Lisboa"
    assert lead.source == "outro"
    assert lead.profile == "outro"
    assert lead.operation == "definindo"
    assert lead.submitted_at == datetime(2026, 1, 8, 23, 20)


def test_webhook_sync_creates_then_updates(service, typebot_payload):
    first = sync_webhook_payload(service, typebot_payload)
    assert first.is_new
    assert first.lead.status == "novo"
    assert {t.name for t in first.lead.tags} == {"Alto Valor", "Urgente", "Investidor"}

    typebot_payload["localizacao"] = "Serra - ES"
    second = sync_webhook_payload(service, typebot_payload)

    assert not second.is_new
    assert second.lead.id == first.lead.id
    assert second.lead.location == "Serra - ES"
    assert len(service.list()) == 1


def test_csv_import_skips_duplicates_and_nameless_rows(service):
    service.create(map_payload_to_lead({"nome": "Já Existe", "email": "dup@example.com"}))

    rows = [
        {"nome": "Carlos", "email": "carlos@example.com", "telefone": "27988887777",
         "capital": "Até R$ 250 mil", "atracao": "Marca, Suporte", "origem_lead": "site",
         "Submitted at": "31 de dez. de 2025, 14:51", "visao_cliente": "Crescer", "FAQ 1": "Sim"},
        {"nome": "", "email": "ghost@example.com"},
        {"nome": "Duplicado", "email": "dup@example.com"},
    ]
    summary = import_csv_rows(service, rows)

    assert (summary.imported, summary.skipped, summary.failed) == (1, 2, 0)

    carlos = service.repository.find_lead_by_email("carlos@example.com")
    assert carlos.source == "website"
    assert carlos.submitted_at == datetime(2025, 12, 31, 14, 51)
    assert carlos.notes == "Visão Cliente: Crescer\nFAQ 1: Sim"
    assert {t.name for t in carlos.tags} == {"Entrada", "Marca", "Suporte"}
    assert [a.content for a in carlos.activities] == ["Lead importado via CSV"]

    dup = service.repository.find_lead_by_email("dup@example.com")
    assert dup.name == "Já Existe"


def test_csv_import_counts_failures_and_continues(service, monkeypatch):
    real_create = service.create
    calls = []

    def flaky_create(fields, activity_content="Lead criado"):
        calls.append(fields.name)
        if fields.name == "Quebra":
            from app.core.exceptions import StoreError
            raise StoreError("insert failed")
        return real_create(fields, activity_content=activity_content)

    monkeypatch.setattr(service, "create", flaky_create)

    summary = import_csv_rows(service, [
        {"nome": "Quebra", "email": "q@example.com"},
        {"nome": "Segue", "email": "s@example.com"},
    ])

    assert calls == ["Quebra", "Segue"]
    assert (summary.imported, summary.skipped, summary.failed) == (1, 0, 1)
