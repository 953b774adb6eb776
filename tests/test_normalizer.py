from datetime import datetime

import pytest

from app.workers.lead.normalizer import (
    SOURCES,
    PROFILES,
    OPERATIONS,
    map_source,
    map_operation,
    map_profile,
    determine_tags,
    interest_tags,
    parse_pt_br_date,
    parse_submitted_at,
    clean_email,
    format_phone,
    build_notes,
    build_csv_notes,
)

NOW = datetime(2026, 1, 9, 12, 0)


@pytest.mark.parametrize("text,expected", [
    ("Instagram", "instagram"),
    ("Vi no FACEBOOK", "facebook"),
    ("whatsapp do amigo", "whatsapp"),
    ("Pelo site", "website"),
    ("webinar", "website"),
    ("Indicação de amigo", "indicacao"),
    ("instagram e facebook", "instagram"),
    ("TikTok", "outro"),
    ("", "outro"),
    (None, "outro"),
])
def test_map_source(text, expected):
    assert map_source(text) == expected


@pytest.mark.parametrize("text", ["", None, "???", "Quero operar eu mesmo", "investidor", 123])
def test_mappers_are_total(text):
    assert map_source(text) in SOURCES
    assert map_operation(text) in OPERATIONS
    assert map_profile(text) in PROFILES


def test_profile_and_operation_diverge_on_same_answer():
    answer = "Quero operar eu mesmo"
    assert map_operation(answer) == "operador"
    assert map_profile(answer) == "empresario"

    assert map_operation("Sou investidor") == "investidor"
    assert map_profile("Sou investidor") == "investidor"

    assert map_operation("ainda não sei") == "definindo"
    assert map_profile("ainda não sei") == "outro"


def test_determine_tags_rules_are_additive():
    tags = determine_tags({"capital": "Acima de R$ 500 mil", "prazo": "próximos 3 meses"})
    names = [t["name"] for t in tags]
    assert names == ["Alto Valor", "Urgente"]
    assert tags[0]["color"] == "#10B981"


def test_determine_tags_all_rules():
    tags = determine_tags({
        "capital": "Até R$ 250 mil",
        "prazo": "Só pesquisando por enquanto",
        "perfil_operador": "Quero ser INVESTIDOR",
    })
    # "Só" is capitalized, the phrase match is case sensitive
    assert [t["name"] for t in tags] == ["Entrada", "Investidor"]

    tags = determine_tags({"prazo": "no próximo ano"})
    assert [t["name"] for t in tags] == ["Frio"]


def test_determine_tags_empty_payload():
    assert determine_tags({}) == []
    assert determine_tags(None) == []


def test_interest_tags():
    tags = interest_tags("Marca, Retorno , ,Suporte")
    assert [t["name"] for t in tags] == ["Marca", "Retorno", "Suporte"]
    assert all(t["color"] == "#64748b" for t in tags)
    assert interest_tags("") == []


# ---------------------------------------------------------
# DATES
# ---------------------------------------------------------
def test_parse_date_without_year_uses_current_year():
    assert parse_pt_br_date("8 de jan., 23:20", now=NOW) == datetime(2026, 1, 8, 23, 20)


def test_parse_date_with_explicit_year():
    assert parse_pt_br_date("31 de dez. de 2025, 14:51", now=NOW) == datetime(2025, 12, 31, 14, 51)


def test_parse_date_rolls_back_far_future_dates():
    assert parse_pt_br_date("31 de dez., 14:51", now=NOW) == datetime(2025, 12, 31, 14, 51)


def test_parse_date_near_future_is_kept():
    assert parse_pt_br_date("20 de jan., 08:00", now=NOW) == datetime(2026, 1, 20, 8, 0)


def test_parse_date_explicit_future_year_is_not_corrected():
    assert parse_pt_br_date("1 de dez. de 2026, 10:00", now=NOW) == datetime(2026, 12, 1, 10, 0)


def test_parse_date_with_year_and_no_time():
    assert parse_pt_br_date("1 de dez. de 2024", now=NOW) == datetime(2024, 12, 1, 0, 0)


def test_parse_submitted_at_defaults_to_utc_clock():
    before = datetime.utcnow()
    parsed = parse_submitted_at(None)
    assert before <= parsed <= datetime.utcnow()


def test_parse_date_missing_time_is_midnight():
    assert parse_pt_br_date("5 de jan.", now=NOW) == datetime(2026, 1, 5, 0, 0)


def test_parse_date_month_without_period():
    assert parse_pt_br_date("2 de jan, 09:15", now=NOW) == datetime(2026, 1, 2, 9, 15)


@pytest.mark.parametrize("text", ["", None, "ontem", "de jan", "32 de jan., 10:00"])
def test_parse_date_garbage_returns_now(text):
    assert parse_pt_br_date(text, now=NOW) == NOW


def test_parse_submitted_at_iso():
    assert parse_submitted_at("2026-01-08T23:20:00Z", now=NOW) == datetime(2026, 1, 8, 23, 20)
    assert parse_submitted_at("2026-01-08T20:20:00-03:00", now=NOW) == datetime(2026, 1, 8, 23, 20)
    assert parse_submitted_at("8 de jan., 23:20", now=NOW) == datetime(2026, 1, 8, 23, 20)
    assert parse_submitted_at(None, now=NOW) == NOW


# ---------------------------------------------------------
# CONTACT & NOTES
# ---------------------------------------------------------
def test_clean_email():
    assert clean_email("  ana@example.com ") == "ana@example.com"
    assert clean_email("not-an-email") is None
    assert clean_email("") is None


def test_format_phone():
    assert format_phone("5527999450904") == "+55 (27) 99945-0904"
    assert format_phone("27999450904") == "(27) 99945-0904"
    assert format_phone("2733334444") == "(27) 3333-4444"
    assert format_phone("123") == "123"
    assert format_phone(None) == ""


def test_build_notes_order_and_skips_missing():
    notes = build_notes({"prazo": "3 meses", "visao_cliente": "Crescer", "confirmacao": ""})
    assert notes == "Visão: Crescer\n\nPrazo: 3 meses"


def test_build_csv_notes_collects_faq_columns():
    row = {
        "visao_cliente": "Expandir",
        "FAQ 1": "Sim",
        "Mapeamento de perfil": "A",
        "confirmacao": "ok",
        "capital": "ignored",
        "FAQ 2": " ",
    }
    assert build_csv_notes(row) == "Visão Cliente: Expandir\nFAQ 1: Sim\nMapeamento de perfil: A\nconfirmacao: ok"
