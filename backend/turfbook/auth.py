# backend/turfbook/auth.py
"""
Caller identity.

Tokens are verified upstream; the gateway forwards only the normalized
identity as X-User-Id / X-User-Role, and this service trusts that pair.
"""

from dataclasses import dataclass

from fastapi import Header, HTTPException


@dataclass(frozen=True)
class Identity:
    """
    Verified caller. Every operation authorizes on user_id alone; role is
    carried from the gateway but no operation reads it yet.
    """
    user_id: str
    role: str = "user"


def get_identity(
    x_user_id: str | None = Header(None),
    x_user_role: str | None = Header(None),
) -> Identity:
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return Identity(user_id=user_id, role=(x_user_role or "user").strip().lower())
