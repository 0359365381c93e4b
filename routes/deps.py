from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from datetime import datetime, timedelta
from typing import Optional
from feed.hub import notification_hub
from feed.session import NotificationSession
from models.notification import Identity
from logging_config import get_logger, user_id_var, role_var
from utils.hr_api import HRApiError
from config import config

logger = get_logger("auth")

# Config from central config
SECRET_KEY = config.SECRET_KEY
ALGORITHM = config.ALGORITHM

# Tokens are issued by the HR backend; this service only decodes them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """Mint a token the way the HR backend does. Used by tests and local tooling."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


async def _role_from_backend(token: str) -> Optional[str]:
    """Ask the HR backend who the token belongs to, for tokens without a role claim."""
    api = notification_hub.api_factory(token)
    try:
        body = await api.get_me()
    except HRApiError as e:
        logger.warning(f"Role lookup via /auth/me failed: {e}")
        return None
    finally:
        await api.close()
    user = body.get("user") if isinstance(body, dict) else None
    if not isinstance(user, dict):
        return None
    return user.get("role")


async def get_current_identity(token: str = Depends(oauth2_scheme)) -> Identity:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT decode failed: {e}")
        raise credentials_exception

    user_id = payload.get("sub") or payload.get("id")
    if not user_id:
        logger.warning("Token decoded but missing 'sub' claim")
        raise credentials_exception

    role = payload.get("role") or await _role_from_backend(token)
    if not role:
        logger.warning(f"Could not resolve a role for token", extra={"data": {"user_id": user_id}})
        raise credentials_exception

    user_id_var.set(str(user_id))
    role_var.set(role)
    return Identity(user_id=str(user_id), role=role)


async def get_session(
    identity: Identity = Depends(get_current_identity),
    token: str = Depends(oauth2_scheme),
) -> NotificationSession:
    """The caller's notification session, started (or re-targeted) for their identity."""
    return await notification_hub.session_for(identity, token)
