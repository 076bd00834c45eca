"""Request authentication for the prompt API.

Identity is established upstream (gateway or dashboard backend) and passed in
headers:
- X-User-Id: the acting user's id (required)
- X-User-Email: the acting user's email (used for the admin allowlist)
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException

from aura_prompts.config import get_admin_emails, is_dev_mode
from aura_prompts.lib.context import set_current_user_id

logger = logging.getLogger(__name__)


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
) -> dict:
    """Dependency returning the acting user as {"sub", "email"}.

    Raises:
        HTTPException 401: If no user id header was sent
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")

    set_current_user_id(user_id)
    return {"sub": user_id, "email": (x_user_email or "").strip().lower()}


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    """Dependency that requires the user's email to be in ADMIN_EMAILS.

    In DEV_MODE an empty allowlist admits every authenticated user.

    Raises:
        HTTPException 403: If the user is not an admin
    """
    admin_emails = get_admin_emails()

    if not admin_emails:
        if is_dev_mode():
            logger.warning("ADMIN_EMAILS not set, allowing access in DEV_MODE")
            return user
        raise HTTPException(
            status_code=403,
            detail="Admin access not configured. Set ADMIN_EMAILS environment variable.",
        )

    if user["email"] not in admin_emails:
        logger.warning('Admin access denied for user: %s', user["email"] or user["sub"])
        raise HTTPException(
            status_code=403,
            detail="Admin access required. Contact your administrator.",
        )

    return user
