from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import List, Optional

from models.user import Mode, UserCreate, UserLogin
from utils.guards import raise_for_result
from utils.jwt import create_access_token
from utils.security import get_session, require_session
from utils.session_service import SessionContext

router = APIRouter(prefix="/auth", tags=["Auth"])

# ======================
# Schemas
# ======================

class SwitchModeRequest(BaseModel):
    mode: Mode

class BecomeSellerRequest(BaseModel):
    bio: str = ""
    skills: List[str] = []
    languages: List[str] = []
    profile_pic: Optional[str] = None

# ======================
# Helpers
# ======================

def session_payload(session: SessionContext) -> dict:
    return {
        "user": session.actor.model_dump(mode="json"),
        "current_mode": session.current_mode.value,
        "is_authenticated": session.is_authenticated,
    }

def token_response(session: SessionContext, message: str) -> dict:
    actor = session.actor
    return {
        "message": message,
        "access_token": create_access_token(actor.id, actor.role.value),
        "token_type": "bearer",
        **session_payload(session),
    }

# ======================
# Signup / Login
# ======================

@router.post("/signup")
async def signup(data: UserCreate, session: SessionContext = Depends(get_session)):
    result = await session.signup(data.name, data.email, data.password)
    raise_for_result(result)
    return token_response(session, result.message)


@router.post("/login")
async def login(data: UserLogin, session: SessionContext = Depends(get_session)):
    result = await session.login(data.email, data.password)
    if not result.success:
        raise HTTPException(401, result.message)
    return token_response(session, result.message)


@router.post("/logout")
async def logout(session: SessionContext = Depends(require_session)):
    # tokens are stateless, the client drops its copy
    session.logout()
    return {"message": "Logged out", "current_mode": session.current_mode.value}

# ======================
# Session
# ======================

@router.get("/me")
async def me(session: SessionContext = Depends(require_session)):
    return session_payload(session)


@router.post("/switch-mode")
async def switch_mode(data: SwitchModeRequest, session: SessionContext = Depends(require_session)):
    if session.switch_mode(data.mode):
        raise_for_result(await session.save_mode())
    return {"current_mode": session.current_mode.value}


@router.post("/become-seller")
async def become_seller(data: BecomeSellerRequest, session: SessionContext = Depends(require_session)):
    result = await session.become_seller(data.model_dump())
    raise_for_result(result)
    return token_response(session, result.message)


@router.patch("/profile")
async def update_profile(data: dict, session: SessionContext = Depends(require_session)):
    raise_for_result(await session.update_profile(data))
    return session_payload(session)
