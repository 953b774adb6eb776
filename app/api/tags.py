from fastapi import APIRouter, Depends
from typing import List

from app.core.dependencies import get_repository
from app.repositories.base import LeadRepository
from app.services.tag_service import TagService
from app.schemas.lead import LeadTag
from app.schemas.tag import TagCreate, TagUpdate

router = APIRouter(prefix="/api/tags", tags=["Tags"])


def get_tag_service(repository: LeadRepository = Depends(get_repository)) -> TagService:
    return TagService(repository)


@router.get("/", response_model=List[LeadTag])
def list_tags(service: TagService = Depends(get_tag_service)):
    return service.list()


@router.post("/", response_model=LeadTag, status_code=201)
def create_tag(payload: TagCreate, service: TagService = Depends(get_tag_service)):
    return service.create(payload.name, payload.color)


@router.put("/{tag_id}", response_model=LeadTag)
def update_tag(tag_id: str, payload: TagUpdate, service: TagService = Depends(get_tag_service)):
    return service.update(LeadTag(id=tag_id, name=payload.name, color=payload.color))


@router.delete("/{tag_id}")
def delete_tag(tag_id: str, service: TagService = Depends(get_tag_service)):
    service.delete(tag_id)
    return {"message": "Tag deleted successfully"}
