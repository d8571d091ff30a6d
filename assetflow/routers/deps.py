from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.database import get_db
from ..services.container import Services, build_services


def get_services(db: AsyncSession = Depends(get_db)) -> Services:
    return build_services(db, get_settings())
