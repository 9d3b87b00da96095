"""Keeps the achievements table in step with the static definitions."""
import logging

from sqlalchemy.orm import Session

from woodpecker.achievements.definitions import ACHIEVEMENTS
from woodpecker.models.models import Achievement

logger = logging.getLogger(__name__)


def sync_catalog(db: Session) -> int:
    """Upsert every achievement definition. Returns the number of rows written."""
    existing = {a.id: a for a in db.query(Achievement).all()}
    for definition in ACHIEVEMENTS:
        row = existing.get(definition.id)
        if row is None:
            row = Achievement(id=definition.id)
            db.add(row)
        row.name = definition.name
        row.description = definition.description
        row.category = definition.category.value
        row.icon = definition.icon
        row.sort_order = definition.sort_order
    db.commit()
    logger.info(f"Achievement catalog synced: {len(ACHIEVEMENTS)} achievements")
    return len(ACHIEVEMENTS)
