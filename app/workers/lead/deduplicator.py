from typing import Optional

from app.repositories.base import LeadRepository
from app.schemas.lead import Lead


def find_existing(repository: LeadRepository, email: Optional[str], phone: Optional[str]) -> Optional[Lead]:
    # Email wins over phone; the first match is taken as-is, conflicting records are never merged
    if email:
        lead = repository.find_lead_by_email(email)
        if lead:
            return lead

    if phone:
        return repository.find_lead_by_phone(phone)

    return None
