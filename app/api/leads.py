from fastapi import APIRouter, Depends, Query
from typing import List

from app.core.dependencies import get_lead_service
from app.services.lead_service import LeadService
from app.schemas.lead import Lead, LeadIn, LeadActivity, StatusUpdate, NoteCreate

router = APIRouter(prefix="/api/leads", tags=["Leads"])


# --- READ ALL ---
@router.get("/", response_model=List[Lead])
def list_leads(service: LeadService = Depends(get_lead_service)):
    return service.list()


# --- LEADS WITH A STALE STATUS ---
@router.get("/orphans", response_model=List[Lead])
def list_orphaned_leads(service: LeadService = Depends(get_lead_service)):
    return service.registry.orphaned(service.list())


# --- READ ONE ---
@router.get("/{lead_id}", response_model=Lead)
def get_lead(lead_id: str, service: LeadService = Depends(get_lead_service)):
    return service.get(lead_id)


# --- CREATE ---
@router.post("/", response_model=Lead, status_code=201)
def create_lead(payload: LeadIn, service: LeadService = Depends(get_lead_service)):
    return service.create(payload)


# --- UPDATE ---
@router.put("/{lead_id}", response_model=Lead)
def update_lead(lead_id: str, payload: LeadIn, service: LeadService = Depends(get_lead_service)):
    return service.update(lead_id, payload)


# --- STATUS (kanban drag & drop) ---
@router.patch("/{lead_id}/status", response_model=Lead)
def update_lead_status(lead_id: str, payload: StatusUpdate, service: LeadService = Depends(get_lead_service)):
    return service.update_status(lead_id, payload.status)


@router.post("/{lead_id}/move", response_model=Lead)
def move_lead(
    lead_id: str,
    direction: str = Query(..., pattern="^(left|right)$"),
    service: LeadService = Depends(get_lead_service),
):
    return service.move(lead_id, direction)


# --- DUPLICATE ---
@router.post("/{lead_id}/duplicate", response_model=Lead, status_code=201)
def duplicate_lead(lead_id: str, service: LeadService = Depends(get_lead_service)):
    return service.duplicate(lead_id)


# --- NOTES ---
@router.post("/{lead_id}/notes", response_model=LeadActivity, status_code=201)
def add_note(lead_id: str, payload: NoteCreate, service: LeadService = Depends(get_lead_service)):
    return service.add_note(lead_id, payload.content)


# --- DELETE ---
@router.delete("/{lead_id}")
def delete_lead(lead_id: str, service: LeadService = Depends(get_lead_service)):
    service.delete(lead_id)
    return {"message": "Lead deleted successfully"}
