from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser


async def require_ga_specialist(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Require the GA_specialist role. Used on calendar mutations, promotion and leave review."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can perform this action",
        )
    return current_user
