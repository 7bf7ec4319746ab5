from fastapi import APIRouter, Depends, Request, Response

from blogrpc.config import settings
from blogrpc.dependencies import get_current_user
from blogrpc.models import User
from blogrpc.schemas import SuccessResponse, UserResponse
from blogrpc.sessions import session_cookie_options

router = APIRouter(prefix="/api/rpc", tags=["auth"])

@router.get("/auth.me", response_model=UserResponse | None)
async def me(user: User | None = Depends(get_current_user)):
    return user

@router.post("/auth.logout", response_model=SuccessResponse)
async def logout(request: Request, response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME, **session_cookie_options(request))
    return SuccessResponse()
