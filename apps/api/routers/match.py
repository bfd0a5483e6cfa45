"""
Match router: the caller's own assignment for the current year.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_year, require_authenticated
from services.assignments import get_match_for

router = APIRouter()


@router.get("")
async def get_my_match(
    user: User = Depends(require_authenticated),
    year: int = Depends(get_current_year),
    db: AsyncSession = Depends(get_db),
):
    """Return the recipient and whether this is the caller's first reveal."""
    result = await get_match_for(user.id, year, db)
    return result.to_dict()
