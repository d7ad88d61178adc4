from __future__ import annotations
import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from challist.config import settings
from challist.schemas.user import Identity
from challist.security import decode_token

security = HTTPBearer()


async def get_identity(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Identity:
    try:
        data = decode_token(credentials.credentials)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = data.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return Identity(
        user_id=str(user_id),
        username=data.get("username") or str(user_id),
        avatar=data.get("avatar"),
        is_admin=bool(data.get("is_admin")) or str(user_id) in settings.admin_user_ids,
    )


async def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Admin only")
    return identity
