"""Authentication dependencies for routes."""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fleet.auth import decode_access_token
from fleet.errors import AdminRequired, AuthenticationRequired
from fleet.models import Role
from fleet.schemas import TokenPayload

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenPayload:
    """
    Resolve the caller from the Authorization: Bearer header.

    Missing token is a 401; a token that fails verification is a 403.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequired()
    return decode_access_token(credentials.credentials)


async def require_admin(user: TokenPayload = Depends(get_current_user)) -> TokenPayload:
    if user.role != Role.ADMIN.value:
        raise AdminRequired()
    return user
