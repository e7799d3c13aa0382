import logging
from fastapi import APIRouter, Depends, Response, HTTPException, status
from app.schemas import LoginRequest, LoginResponse, CurrentUser
from app.auth import verify_credentials, create_session_token, get_current_user, COOKIE_NAME, TOKEN_EXPIRE_DAYS

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, response: Response):
    if not verify_credentials(request.email, request.password):
        logger.warning(f"Failed login for {request.email!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    token = create_session_token(request.email.strip().lower())
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        samesite="lax",
    )
    return LoginResponse(success=True, message="Logged in successfully")


@router.post("/logout", response_model=LoginResponse)
async def logout(response: Response):
    response.delete_cookie(COOKIE_NAME)
    return LoginResponse(success=True, message="Logged out successfully")


@router.get("/check", response_model=CurrentUser)
async def check_auth(user: CurrentUser = Depends(get_current_user)):
    return user
