"""
Pure mapping from the free-text answers of the qualification form (Typebot
webhook or CSV export) to canonical lead fields.

Every function here is total: unknown or empty input degrades to a safe
default ('outro', 'definindo', now) instead of raising, so ingestion never
fails because somebody typed something unexpected.
"""
import re
from datetime import datetime, timedelta, timezone

SOURCES = ("instagram", "facebook", "whatsapp", "website", "indicacao", "outro")
PROFILES = ("empresario", "investidor", "autonomo", "assalariado", "outro")
OPERATIONS = ("investidor", "operador", "definindo", "outro")
ACTIVITY_TYPES = ("note", "status_change", "call", "email", "meeting")

SOURCE_LABELS = {
    "instagram": "Instagram",
    "facebook": "Facebook",
    "whatsapp": "WhatsApp",
    "website": "Website",
    "indicacao": "Indicação",
    "outro": "Outro",
}

PROFILE_LABELS = {
    "empresario": "Empresário",
    "investidor": "Investidor",
    "autonomo": "Autônomo",
    "assalariado": "Assalariado",
}

INTEREST_TAG_COLOR = "#64748b"

MONTHS = {
    "jan": 1, "fev": 2, "mar": 3, "abr": 4, "mai": 5, "jun": 6,
    "jul": 7, "ago": 8, "set": 9, "out": 10, "nov": 11, "dez": 12,
}

# A date without year that lands further than this in the future belongs to last year
FUTURE_TOLERANCE = timedelta(days=30)


def _lower(value) -> str:
    if value is None:
        return ""
    return str(value).lower()


# ---------------------------------------------------------
# 1. ENUM MAPPERS
# ---------------------------------------------------------
def map_source(text) -> str:
    s = _lower(text)
    if not s:
        return "outro"
    if "instagram" in s:
        return "instagram"
    if "facebook" in s:
        return "facebook"
    if "whatsapp" in s:
        return "whatsapp"
    if "site" in s or "web" in s:
        return "website"
    if "indica" in s:
        return "indicacao"
    return "outro"


def map_operation(text) -> str:
    o = _lower(text)
    if "investidor" in o:
        return "investidor"
    if "operar" in o or "eu mesmo" in o:
        return "operador"
    return "definindo"


def map_profile(text) -> str:
    # Same form answer as map_operation, different vocabulary: "operar" means empresario here
    o = _lower(text)
    if "investidor" in o:
        return "investidor"
    if "operar" in o or "eu mesmo" in o:
        return "empresario"
    return "outro"


# ---------------------------------------------------------
# 2. TAG RULES
# ---------------------------------------------------------
TAG_RULES = [
    # (form field, phrases, tag name, color, case-insensitive)
    ("capital", ("Acima de R$ 500 mil",), "Alto Valor", "#10B981", False),
    ("capital", ("Até R$ 250 mil",), "Entrada", "#9CA3AF", False),
    ("prazo", ("próximos 3 meses",), "Urgente", "#EF4444", False),
    ("prazo", ("só pesquisando", "próximo ano"), "Frio", "#3B82F6", False),
    ("perfil_operador", ("investidor",), "Investidor", "#8B5CF6", True),
]


def determine_tags(payload) -> list:
    """
    Evaluates every rule independently; zero, one or several tags may come out.
    Returns [{"name": ..., "color": ...}] in rule order.
    """
    payload = payload or {}
    tags = []
    for field, phrases, name, color, ignore_case in TAG_RULES:
        value = payload.get(field)
        if not value:
            continue
        haystack = str(value)
        if ignore_case:
            haystack = haystack.lower()
        if any(p in haystack for p in phrases):
            tags.append({"name": name, "color": color})
    return tags


def interest_tags(text) -> list:
    """'Marca, Retorno' -> one neutral tag per comma-separated interest."""
    if not text:
        return []
    names = [t.strip() for t in str(text).split(",")]
    return [{"name": n, "color": INTEREST_TAG_COLOR} for n in names if n]


# ---------------------------------------------------------
# 3. DATES
# ---------------------------------------------------------
def parse_pt_br_date(text, now: datetime = None) -> datetime:
    """
    Parses Typebot's pt-BR timestamps:
        "8 de jan., 23:20"
        "31 de dez. de 2025, 14:51"
    Missing year -> current year, missing time -> 00:00, garbage -> now.
    """
    now = now or datetime.utcnow()
    if not text:
        return now

    clean = str(text).lower().replace("de ", "").strip()
    parts = [p for p in re.split(r"[\s,]+", clean) if p]
    if len(parts) < 2:
        return now

    day_match = re.match(r"\d+", parts[0])
    if not day_match:
        return now
    day = int(day_match.group())

    month = MONTHS.get(parts[1].rstrip("."), now.month)

    year = now.year
    has_year = len(parts) >= 3 and re.fullmatch(r"\d{4}", parts[2]) is not None
    if has_year:
        year = int(parts[2])

    hour, minute = 0, 0
    last = parts[-1]
    if ":" in last:
        h, _, m = last.partition(":")
        hour = int(h) if h.isdigit() else 0
        minute = int(m) if m.isdigit() else 0

    try:
        parsed = datetime(year, month, day, hour, minute)
    except ValueError:
        return now

    if not has_year and parsed > now + FUTURE_TOLERANCE:
        try:
            parsed = parsed.replace(year=parsed.year - 1)
        except ValueError:
            # 29 Feb has no previous-year twin
            parsed = parsed.replace(year=parsed.year - 1, day=28)
    return parsed


def parse_submitted_at(value, now: datetime = None) -> datetime:
    """ISO strings (anything with a '-') first, pt-BR format as fallback."""
    now = now or datetime.utcnow()
    if not value:
        return now
    if isinstance(value, datetime):
        return value

    raw = str(value).strip()
    if "-" in raw:
        try:
            if raw.endswith("Z"):
                raw = raw[:-1] + "+00:00"
            dt = datetime.fromisoformat(raw)
            if dt.tzinfo is not None:
                dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
            return dt
        except ValueError:
            pass
    return parse_pt_br_date(raw, now=now)


# ---------------------------------------------------------
# 4. CONTACT FIELDS
# ---------------------------------------------------------
def clean_text(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def clean_email(value):
    value = clean_text(value)
    if value is None or "@" not in value:
        return None
    return value


def format_phone(value) -> str:
    """Display-only formatting of Brazilian numbers; dedupe uses the raw value."""
    if not value:
        return ""
    raw = str(value).strip()
    digits = re.sub(r"\D", "", raw)

    country = ""
    if len(digits) in (12, 13) and digits.startswith("55"):
        country, digits = "+55 ", digits[2:]

    if len(digits) == 11:
        return f"{country}({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"{country}({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return raw


# ---------------------------------------------------------
# 5. NOTES
# ---------------------------------------------------------
def build_notes(payload) -> str:
    payload = payload or {}
    parts = []
    for field, label in (
        ("visao_cliente", "Visão"),
        ("atracao", "Atração"),
        ("prazo", "Prazo"),
        ("confirmacao", "Status Agendamento"),
    ):
        value = clean_text(payload.get(field))
        if value:
            parts.append(f"{label}: {value}")
    return "\n\n".join(parts)


def build_csv_notes(row) -> str:
    row = row or {}
    parts = []
    vision = clean_text(row.get("visao_cliente"))
    if vision:
        parts.append(f"Visão Cliente: {vision}")

    for key, value in row.items():
        value = clean_text(value)
        if not key or not value:
            continue
        if key.startswith("FAQ") or "Mapeamento" in key or "Revisão" in key or key == "confirmacao":
            parts.append(f"{key}: {value}")
    return "\n".join(parts)
