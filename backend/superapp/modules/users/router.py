"""
User profile routes.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from superapp.core.auth import CurrentUser, get_current_user
from superapp.core.database import commit, get_db
from superapp.core.errors import StoreConflict
from superapp.modules.users.models import UserProfile
from superapp.shared.schemas import ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/users/save")
async def save_user(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Record the signed-in user's profile.
    Repeated calls leave the existing profile untouched.
    """
    profile = db.get(UserProfile, current_user.id)
    if profile is None:
        db.add(UserProfile(id=current_user.id, email=current_user.email))
        try:
            commit(db)
            logger.info(f"Created profile for user {current_user.id}")
        except StoreConflict:
            logger.debug(f"Profile for user {current_user.id} saved by a concurrent request")

    return ok(message="User saved", id=current_user.id, email=current_user.email)
