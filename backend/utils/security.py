from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError

from config.constants import PROFILES
from database import get_gateway
from models.user import Profile, Role
from utils.jwt import decode_token
from utils.session_provider import SessionProvider
from utils.session_service import SessionContext

security = HTTPBearer(auto_error=False)


async def get_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    gateway=Depends(get_gateway),
) -> SessionContext:
    """
    Builds a per-request session. Anonymous requests get a signed-out context.
    """
    provider = SessionProvider()
    context = SessionContext(provider, gateway)

    if credentials is None:
        return context

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    row = await gateway.table(PROFILES).get(user_id)
    if not row or not row.get("is_active", True):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    provider.sign_in(Profile.from_row(row))
    return context


async def require_session(session: SessionContext = Depends(get_session)) -> SessionContext:
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return session


def require_role(*roles: Role):
    async def checker(session: SessionContext = Depends(require_session)):
        if session.actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return session

    return checker
