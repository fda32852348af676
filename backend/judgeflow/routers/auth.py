from types import SimpleNamespace
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..schemas.user_schema import LoginRequest, LoginResponse, UserRead
from ..security import get_jwt_strategy, get_user_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, user_manager=Depends(get_user_manager)):
    """JSON login for the frontend: returns the user together with a bearer token."""
    # authenticate() expects form-like credentials and upgrades outdated password hashes
    credentials = SimpleNamespace(username=payload.email, password=payload.password)
    user = await user_manager.authenticate(credentials)

    if user is None or not user.is_active:
        logger.info("Failed login attempt for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

    token = await get_jwt_strategy().write_token(user)
    return LoginResponse(user=UserRead.model_validate(user, from_attributes=True), token=token)
