"""
Request Dependencies

FastAPI dependencies resolving the calling user.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from sharetaxi.database import get_db
from sharetaxi.models.user import User


async def get_current_user(
    x_user_id: Optional[str] = Header(None)
) -> User:
    """
    Get the calling user.

    The authenticating gateway in front of this API verifies the session
    and forwards the user id in the X-User-Id header.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header required"
        )

    db = get_db()
    doc = await db.users.find_one({"user_id": x_user_id})
    if not doc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user"
        )

    return User(**doc)
