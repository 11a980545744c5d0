"""Hall repository - Database operations for the hall directory"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Hall


class HallRepository:
    """Repository for hall database operations"""

    @staticmethod
    def list_halls(db: Session) -> list[Hall]:
        """Get all halls ordered by name"""
        return db.query(Hall).order_by(Hall.name.asc()).all()

    @staticmethod
    def get_hall_by_name(db: Session, name: str) -> Optional[Hall]:
        return db.query(Hall).filter(Hall.name == name).first()

    @staticmethod
    def hall_exists(db: Session, hall_id: int) -> bool:
        """Check whether a hall ID refers to a real hall"""
        return db.query(Hall.id).filter(Hall.id == hall_id).first() is not None

    @staticmethod
    def create_hall(db: Session, name: str) -> Hall:
        """Create a new hall"""
        hall = Hall(name=name)
        db.add(hall)
        db.commit()
        db.refresh(hall)
        return hall
