from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from typing import List

from app.core.dependencies import get_lead_service
from app.services.lead_service import LeadService
from app.services.report_service import ReportService
from app.schemas.lead import Lead
from app.schemas.report import ReportResponse

router = APIRouter(prefix="/api/reports", tags=["Reports"])


@router.get("/summary", response_model=ReportResponse)
def get_report(service: LeadService = Depends(get_lead_service)):
    return ReportService(service.registry).build(service.list())


@router.get("/export.csv")
def export_csv(service: LeadService = Depends(get_lead_service)):
    output = ReportService(service.registry).export_csv(service.list())
    filename = f"leads_{datetime.utcnow().strftime('%Y-%m-%d')}.csv"
    return StreamingResponse(
        output,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/export.json", response_model=List[Lead])
def export_json(service: LeadService = Depends(get_lead_service)):
    return service.list()
