from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pos_api.db import get_db
from pos_api.services.health_service import check_health

router = APIRouter(tags=['health'])


@router.get('/health')
def health(db: Session = Depends(get_db)):
    return check_health(db)
