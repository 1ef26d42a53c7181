"""Request authentication dependencies for admin and customer routes."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException
from pymongo.database import Database

from config import Settings, get_settings
from database import USERS, find_by_id, get_db
from helpers import isoformat
from security import TokenError, TokenExpired, decode_token

logger = logging.getLogger(__name__)


@dataclass
class AdminPrincipal:
    username: str
    login_time: str
    role: str = "admin"


@dataclass
class UserPrincipal:
    id: str
    email: str
    name: str
    role: str
    login_time: str


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[7:].strip() or None


def _login_time(iat: int) -> str:
    return isoformat(datetime.fromtimestamp(iat / 1000, tz=timezone.utc))


def require_admin(authorization: Optional[str] = Header(None),
                  settings: Settings = Depends(get_settings)) -> AdminPrincipal:
    token = _bearer(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Access denied. Admin token required.")
    try:
        claims = decode_token(settings.token_secret, token, "admin", settings.admin_token_ttl_seconds)
    except TokenExpired:
        raise HTTPException(status_code=401, detail="Admin token expired. Please login again.")
    except TokenError:
        raise HTTPException(status_code=401, detail="Invalid admin token format.")
    if claims.sub != settings.admin_username:
        raise HTTPException(status_code=401, detail="Invalid admin token.")
    return AdminPrincipal(username=claims.sub, login_time=_login_time(claims.iat))


def authenticate_user(token: Optional[str], db: Database, settings: Settings) -> UserPrincipal:
    if token is None:
        raise HTTPException(status_code=401, detail="Access denied. User token required.")
    try:
        claims = decode_token(settings.token_secret, token, "user", settings.user_token_ttl_seconds)
    except TokenExpired:
        raise HTTPException(status_code=401, detail="User token expired. Please login again.")
    except TokenError:
        raise HTTPException(status_code=401, detail="Invalid user token format.")

    user = find_by_id(db, USERS, claims.sub)
    if not user:
        raise HTTPException(status_code=401, detail="User not found.")
    if not user.get("isActive"):
        raise HTTPException(status_code=403, detail="Account is deactivated.")
    if user.get("email") != claims.email:
        raise HTTPException(status_code=401, detail="Invalid user token.")

    return UserPrincipal(
        id=claims.sub,
        email=user["email"],
        name=user.get("name", ""),
        role=user.get("role") or "customer",
        login_time=_login_time(claims.iat),
    )


def require_user(authorization: Optional[str] = Header(None), db: Database = Depends(get_db),
                 settings: Settings = Depends(get_settings)) -> UserPrincipal:
    return authenticate_user(_bearer(authorization), db, settings)


def optional_user(authorization: Optional[str] = Header(None), db: Database = Depends(get_db),
                  settings: Settings = Depends(get_settings)) -> Optional[UserPrincipal]:
    token = _bearer(authorization)
    if token is None:
        return None
    try:
        return authenticate_user(token, db, settings)
    except HTTPException as e:
        logger.info("Optional auth ignored: %s", e.detail)
        return None
