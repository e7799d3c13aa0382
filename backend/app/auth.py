import hmac
from typing import Optional
from datetime import datetime, timedelta, timezone
from fastapi import Request, HTTPException, status
from jose import JWTError, jwt
from app.config import get_settings
from app.schemas import CurrentUser

settings = get_settings()

ALGORITHM = "HS256"
TOKEN_EXPIRE_DAYS = 30
COOKIE_NAME = "session_token"


def create_session_token(email: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=TOKEN_EXPIRE_DAYS)
    to_encode = {"exp": expire, "sub": email, "authenticated": True}
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def verify_session_token(token: str) -> Optional[str]:
    """Return the signed-in email, or None for a bad or expired token."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if not payload.get("authenticated", False):
        return None
    return payload.get("sub")


def verify_credentials(email: str, password: str) -> bool:
    email_ok = email.strip().lower() == settings.admin_email.strip().lower()
    password_ok = hmac.compare_digest(password.encode(), settings.admin_password.encode())
    return email_ok and password_ok


async def get_current_user(request: Request) -> CurrentUser:
    token = request.cookies.get(COOKIE_NAME)
    email = verify_session_token(token) if token else None
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return CurrentUser(email=email)
