import logging
from typing import Dict, List

from app.core.exceptions import StoreError, ValidationError
from app.repositories.base import LeadRepository
from app.schemas.lead import LeadTag
from app.schemas.tag import DEFAULT_TAG_COLOR

logger = logging.getLogger(__name__)


class TagService:
    def __init__(self, repository: LeadRepository):
        self.repository = repository
        # name -> tag, avoids repeated lookups during bulk imports
        self._cache: Dict[str, LeadTag] = {}

    def list(self) -> List[LeadTag]:
        return self.repository.list_tags()

    def create(self, name: str, color: str = DEFAULT_TAG_COLOR) -> LeadTag:
        if self.repository.find_tag_by_name(name):
            raise ValidationError(f"Tag '{name}' already exists")
        tag = self.repository.insert_tag(name, color or DEFAULT_TAG_COLOR)
        self._cache[tag.name] = tag
        logger.info(f"🏷️ Created tag: {tag.name}")
        return tag

    def find_or_create(self, name: str, color: str = DEFAULT_TAG_COLOR) -> LeadTag:
        """Idempotent by name: an existing tag keeps its color."""
        if name in self._cache:
            return self._cache[name]

        tag = self.repository.find_tag_by_name(name)
        if tag is None:
            try:
                tag = self.create(name, color)
            except (StoreError, ValidationError):
                # lost a race on the unique name, the other writer's tag wins
                tag = self.repository.find_tag_by_name(name)
                if tag is None:
                    raise
        self._cache[name] = tag
        return tag

    def update(self, tag: LeadTag) -> LeadTag:
        self.repository.update_tag(tag)
        self._cache = {k: v for k, v in self._cache.items() if v.id != tag.id}
        return tag

    def delete(self, tag_id: str) -> None:
        # hard delete; leads keep existing, the store decides what happens to lead_tags
        self.repository.delete_tag(tag_id)
        self._cache = {k: v for k, v in self._cache.items() if v.id != tag_id}
