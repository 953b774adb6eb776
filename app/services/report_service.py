import csv
import re
from io import StringIO
from collections import Counter
from datetime import datetime
from typing import List, Optional

from app.schemas.lead import Lead
from app.schemas.report import CountItem, StageCount, MonthlyPoint, ReportSummary, ReportResponse
from app.services.pipeline_service import PipelineRegistry, WON_STAGE, LOST_STAGE
from app.workers.lead.normalizer import SOURCE_LABELS, PROFILE_LABELS

CAPITAL_RANGES = [
    ("Até R$ 150k", 0, 150_000),
    ("R$ 150k - 300k", 150_000, 300_000),
    ("R$ 300k - 500k", 300_000, 500_000),
    ("R$ 500k - 1M", 500_000, 1_000_000),
    ("Acima de R$ 1M", 1_000_000, float("inf")),
]

MONTH_LABELS = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]

EXPORT_HEADERS = ["Nome", "Email", "Telefone", "Localização", "Capital", "Status", "Origem", "Criado em"]

_NUMBER = re.compile(r"\d+(?:[.,]\d+)*")
_SUFFIX = re.compile(r"\s*(milh\w*|mil|k|m)\b", re.IGNORECASE)


def _to_float(token: str) -> float:
    # "1.500.000" / "1,5" / "1.234,56" / "150,000"
    if "." in token and "," in token:
        token = token.replace(".", "").replace(",", ".")
    elif "," in token:
        head, _, tail = token.rpartition(",")
        token = token.replace(",", "") if len(tail) == 3 else f"{head.replace(',', '')}.{tail}"
    elif "." in token:
        head, _, tail = token.rpartition(".")
        token = token.replace(".", "") if len(tail) == 3 else token
    return float(token)


def parse_capital(text) -> Optional[float]:
    """
    First number in a capital label, scaled by its unit:
    "Acima de R$ 500 mil" -> 500000, "R$ 1,5 milhão" -> 1500000.
    """
    if not text:
        return None
    match = _NUMBER.search(str(text))
    if not match:
        return None

    value = _to_float(match.group())
    suffix = _SUFFIX.match(str(text), match.end())
    if suffix:
        unit = suffix.group(1).lower()
        if unit.startswith("milh") or unit == "m":
            value *= 1_000_000
        else:
            value *= 1_000
    return value


def _lead_date(lead: Lead) -> Optional[datetime]:
    return lead.submitted_at or lead.created_at


def _shift_month(year: int, month: int, delta: int):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


class ReportService:
    """Dashboard/report aggregates, computed in memory over the lead list."""

    def __init__(self, registry: PipelineRegistry):
        self.registry = registry

    # ---------------------------------------------------------
    # 1. KPIS
    # ---------------------------------------------------------
    def summary(self, leads: List[Lead]) -> ReportSummary:
        first = self.registry.first_stage_id()
        total = len(leads)
        won = sum(1 for l in leads if l.status == WON_STAGE)
        lost = sum(1 for l in leads if l.status == LOST_STAGE)
        new = sum(1 for l in leads if l.status == first)
        in_progress = sum(1 for l in leads if l.status not in (first, WON_STAGE, LOST_STAGE))

        return ReportSummary(
            total=total,
            new=new,
            in_progress=in_progress,
            won=won,
            lost=lost,
            conversion_rate=round(won / total * 100, 1) if total else 0.0,
        )

    # ---------------------------------------------------------
    # 2. BREAKDOWNS
    # ---------------------------------------------------------
    def by_stage(self, leads: List[Lead]) -> List[StageCount]:
        # funnel view, the terminal "lost" column is left out
        counts = Counter(l.status for l in leads)
        return [
            StageCount(id=s.id, title=s.title, value=counts.get(s.id, 0))
            for s in self.registry.stages[:-1]
        ]

    def by_source(self, leads: List[Lead]) -> List[CountItem]:
        counts = Counter(l.source or "outro" for l in leads)
        return [
            CountItem(name=label, value=counts[key])
            for key, label in SOURCE_LABELS.items()
            if counts.get(key)
        ]

    def by_profile(self, leads: List[Lead]) -> List[CountItem]:
        counts = Counter(l.profile for l in leads)
        return [
            CountItem(name=label, value=counts[key])
            for key, label in PROFILE_LABELS.items()
            if counts.get(key)
        ]

    def capital_distribution(self, leads: List[Lead]) -> List[CountItem]:
        values = [parse_capital(l.capital) for l in leads]
        values = [v for v in values if v is not None]
        return [
            CountItem(name=label, value=sum(1 for v in values if low <= v < high))
            for label, low, high in CAPITAL_RANGES
        ]

    def monthly(self, leads: List[Lead], months: int = 6, now: datetime = None) -> List[MonthlyPoint]:
        now = now or datetime.utcnow()
        points = []
        for delta in range(months - 1, -1, -1):
            year, month = _shift_month(now.year, now.month, -delta)
            in_month = [
                l for l in leads
                if _lead_date(l) and _lead_date(l).year == year and _lead_date(l).month == month
            ]
            points.append(MonthlyPoint(
                month=MONTH_LABELS[month - 1],
                key=f"{year:04d}-{month:02d}",
                novos=len(in_month),
                ganhos=sum(1 for l in in_month if l.status == WON_STAGE),
                perdidos=sum(1 for l in in_month if l.status == LOST_STAGE),
            ))
        return points

    def build(self, leads: List[Lead], now: datetime = None) -> ReportResponse:
        return ReportResponse(
            summary=self.summary(leads),
            by_stage=self.by_stage(leads),
            by_source=self.by_source(leads),
            by_profile=self.by_profile(leads),
            by_capital=self.capital_distribution(leads),
            monthly=self.monthly(leads, now=now),
        )

    # ---------------------------------------------------------
    # 3. EXPORT
    # ---------------------------------------------------------
    def export_csv(self, leads: List[Lead]) -> StringIO:
        output = StringIO()
        # BOM so Excel opens the accents correctly
        output.write("\ufeff")
        writer = csv.writer(output, delimiter=";", quoting=csv.QUOTE_ALL)
        writer.writerow(EXPORT_HEADERS)

        for lead in leads:
            created = lead.created_at
            writer.writerow([
                lead.name,
                lead.email or "",
                lead.phone or "",
                lead.location or "",
                lead.capital or "",
                self.registry.title_for(lead.status),
                SOURCE_LABELS.get(lead.source, lead.source or ""),
                created.strftime("%d/%m/%Y") if created else "",
            ])

        output.seek(0)
        return output
