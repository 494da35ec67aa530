from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from cali.core.config import Settings
from cali.database import MAX_ROW_ID


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> int:
    """
    Resolve the owner of the request.

    Until an authentication layer exists the caller names itself with the
    ``X-User-Id`` header; without it the configured default user is used.
    """
    if x_user_id is None:
        return settings.default_user_id

    try:
        user_id = int(x_user_id.strip())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID") from exc

    if not 1 <= user_id <= MAX_ROW_ID:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return user_id
