"""Authentication / authorization.

Kept deliberately small:

- Users table (name/email/password hash + confirmation state + one pending 6-digit code)
- Stateless JWT access tokens sent as `Authorization: Bearer <token>`

`flow` holds the account lifecycle operations; `deps` holds the FastAPI dependency
that authenticates protected routes.
"""

from .deps import get_current_user
from .crud import create_user, public_user

__all__ = [
    "get_current_user",
    "create_user",
    "public_user",
]
