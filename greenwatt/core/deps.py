from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import logging

from greenwatt.core.exceptions import (
    GreenWattError, InvalidStateError, NotFoundError,
    StoreUnavailableError, SyncFailureError
)
from greenwatt.core.security import verify_token
from greenwatt.services.household import Household, HouseholdHub

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class AuthUser:
    """User identity supplied by the identity provider"""
    def __init__(self, user_id: str, email: Optional[str] = None, role: Optional[str] = None):
        self.id = user_id
        self.email = email
        self.role = role


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthUser:
    """Resolve the authenticated user from the bearer token"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    token_data = verify_token(credentials.credentials)
    if token_data is None:
        raise credentials_exception

    return AuthUser(
        user_id=token_data.user_id,
        email=token_data.email,
        role=token_data.role
    )


def get_hub(request: Request) -> HouseholdHub:
    """Household hub created in the application lifespan"""
    hub = getattr(request.app.state, "hub", None)
    if hub is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up"
        )
    return hub


async def get_household(
    current_user: AuthUser = Depends(get_current_user),
    hub: HouseholdHub = Depends(get_hub)
) -> Household:
    """Household of the current user"""
    try:
        return await hub.get(current_user.id)
    except GreenWattError as e:
        raise domain_http_error(e)


def domain_http_error(error: GreenWattError) -> HTTPException:
    """Map an energy core error to the HTTP error returned to clients"""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, InvalidStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, (SyncFailureError, StoreUnavailableError)):
        logger.error(f"Device store failure: {error}")
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
    logger.error(f"Unhandled energy core error: {error}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
