from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from genjobs.config import settings

router = APIRouter()

_bearer = HTTPBearer(auto_error=False)


def require_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str | None:
    """Reject requests without a bearer token.

    The token comes from the host platform and is passed through unverified.
    """
    if credentials is None or not credentials.credentials:
        if settings.require_auth:
            raise HTTPException(
                status_code=401,
                detail="Missing bearer token",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return None
    return credentials.credentials


@router.post("/status")
async def authentication_status(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> dict[str, bool]:
    """Report whether the caller presented a bearer token."""
    return {"isAuthenticated": bool(credentials and credentials.credentials)}
