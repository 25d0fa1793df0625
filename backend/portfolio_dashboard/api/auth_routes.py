"""Auth API routes."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from portfolio_dashboard.api.deps import get_auth_service, get_current_user
from portfolio_dashboard.api.schemas import (
    CredentialsRequest,
    RefreshRequest,
    SignUpPendingResponse,
)
from portfolio_dashboard.errors import SupabaseError
from portfolio_dashboard.models.user import AuthSession, AuthUser, UserProfile
from portfolio_dashboard.services.auth import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signin", response_model=AuthSession)
async def sign_in(req: CredentialsRequest, auth: AuthService = Depends(get_auth_service)):
    return await auth.sign_in(req.email.strip(), req.password)


@router.post("/signup", response_model=AuthSession)
async def sign_up(req: CredentialsRequest, auth: AuthService = Depends(get_auth_service)):
    email = req.email.strip()
    if not email or not req.password:
        raise HTTPException(status_code=400, detail="Email and password are required")
    session = await auth.sign_up(email, req.password)
    if session is None:
        return JSONResponse(
            status_code=202, content=SignUpPendingResponse(email=email).model_dump()
        )
    return session


@router.post("/refresh", response_model=AuthSession)
async def refresh_session(req: RefreshRequest, auth: AuthService = Depends(get_auth_service)):
    return await auth.refresh(req.refresh_token)


@router.post("/signout")
async def sign_out(
    user: AuthUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    try:
        await auth.sign_out(user)
    except SupabaseError:
        raise HTTPException(status_code=502, detail="Sign-out failed, please try again")
    return {"status": "ok"}


@router.get("/me", response_model=UserProfile)
async def get_me(
    user: AuthUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.get_profile(user)
