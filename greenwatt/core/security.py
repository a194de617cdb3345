from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
import logging

from greenwatt.core.config import settings
from greenwatt.schemas.auth import TokenData

logger = logging.getLogger(__name__)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token the way the identity provider signs them"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    try:
        return jwt.encode(
            to_encode,
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM
        )
    except Exception as e:
        logger.error(f"JWT token creation error: {e}")
        raise


def verify_token(token: str) -> Optional[TokenData]:
    """Verify and decode an identity provider token, None when not authenticated"""
    try:
        # jose checks the exp claim while decoding
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )

        user_id: str = payload.get("sub")
        if user_id is None:
            return None

        return TokenData(
            user_id=user_id,
            email=payload.get("email"),
            role=payload.get("role")
        )

    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None
