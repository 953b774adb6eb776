from pydantic import BaseModel
from typing import List


class CountItem(BaseModel):
    name: str
    value: int


class StageCount(BaseModel):
    id: str
    title: str
    value: int


class MonthlyPoint(BaseModel):
    month: str  # 'Jan', 'Fev'...
    key: str    # 'YYYY-MM'
    novos: int
    ganhos: int
    perdidos: int


class ReportSummary(BaseModel):
    total: int
    new: int
    in_progress: int
    won: int
    lost: int
    conversion_rate: float


class ReportResponse(BaseModel):
    summary: ReportSummary
    by_stage: List[StageCount]
    by_source: List[CountItem]
    by_profile: List[CountItem]
    by_capital: List[CountItem]
    monthly: List[MonthlyPoint]
