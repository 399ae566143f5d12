# auth/dependencies.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.api.deps import get_store
from app.core.config import get_settings
from app.store.row_store import RowStore

bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    restaurant_id: str


def issue_token(user_id: str, lifetime_seconds: int = 3600) -> str:
    settings = get_settings()
    payload = {
        "sub": user_id,
        "aud": settings.jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=lifetime_seconds),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


async def user_from_token(token: Optional[str], store: RowStore) -> CurrentUser:
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    rows = await store.select("restaurants", {"user_id": user_id}, columns=["id"], limit=1)
    if not rows:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return CurrentUser(id=user_id, restaurant_id=rows[0]["id"])


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    store: RowStore = Depends(get_store),
) -> CurrentUser:
    return await user_from_token(credentials.credentials if credentials else None, store)
