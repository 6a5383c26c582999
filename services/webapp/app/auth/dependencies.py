# =============================================================================
# Authentication Dependencies
# =============================================================================
# FastAPI dependencies resolving the calling operator. Requests without valid
# credentials are rejected before any job state is read or written.
# =============================================================================

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from app.auth.providers import AuthenticatedUser, AuthProvider, OperatorAuthProvider
from app.config import Settings, get_settings

security = HTTPBasic()


def get_auth_provider(settings: Settings = Depends(get_settings)) -> AuthProvider:
    return OperatorAuthProvider(settings.operator_accounts())


def get_current_user(
    credentials: HTTPBasicCredentials = Depends(security),
    auth_provider: AuthProvider = Depends(get_auth_provider),
) -> AuthenticatedUser:
    """
    Resolve the operator from HTTP Basic credentials.

    Raises:
        HTTPException: 401 Unauthorized if credentials are invalid.
    """
    user = auth_provider.authenticate(credentials.username, credentials.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid credentials", "non_retryable": True},
            headers={"WWW-Authenticate": "Basic"},
        )
    return user
