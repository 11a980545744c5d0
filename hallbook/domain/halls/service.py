"""Hall service - Read access to the hall directory"""

import logging

from sqlalchemy.orm import Session

from ...models import Hall
from .repository import HallRepository

logger = logging.getLogger(__name__)


class HallService:
    """Service layer for the hall directory"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = HallRepository()

    def list_halls(self) -> list[Hall]:
        return self.repo.list_halls(self.db)

    def ensure_halls(self, names: list[str]) -> list[Hall]:
        """Create any named halls that don't exist yet, returning all of them"""
        halls = []
        for raw_name in names:
            name = raw_name.strip()
            if not name:
                continue
            hall = self.repo.get_hall_by_name(self.db, name)
            if hall is None:
                hall = self.repo.create_hall(self.db, name)
                logger.info(f"✅ Created hall {hall.id}: {name}")
            halls.append(hall)
        return halls
