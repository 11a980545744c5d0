"""Hall router - FastAPI endpoints for the hall directory"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import HallResponse
from .service import HallService

router = APIRouter(prefix="/halls", tags=["Halls"])


def get_hall_service(db: Session = Depends(get_db)) -> HallService:
    """Dependency injection for HallService"""
    return HallService(db)


@router.get("", response_model=list[HallResponse])
async def list_halls(
    response: Response,
    service: HallService = Depends(get_hall_service),
):
    """List all halls ordered by name"""
    response.headers["Cache-Control"] = "no-store"
    return [HallResponse.model_validate(h) for h in service.list_halls()]
