from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from codetrack.api.services import AppServices
from codetrack.database.models import User


def get_services(request: Request) -> AppServices:
    return request.app.state.services


async def get_current_user(
    x_user_id: Optional[int] = Header(default=None),
    services: AppServices = Depends(get_services)
) -> User:
    """The authenticated caller, identified upstream and passed as X-User-Id."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    user = await services.db.get_user(x_user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


async def get_optional_user(
    x_user_id: Optional[int] = Header(default=None),
    services: AppServices = Depends(get_services)
) -> Optional[User]:
    if x_user_id is None:
        return None
    return await services.db.get_user(x_user_id)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
