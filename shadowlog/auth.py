"""
Password hashing (Argon2) and HS256 access tokens.
Token signing and verification use the Settings the app was built with (app.state.settings),
so an app created with an explicit secret never falls back to the environment defaults.
"""
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from shadowlog.config import Settings
from shadowlog.database import get_db
from shadowlog.dependencies import get_app_settings
from shadowlog.models.user import User
from shadowlog.schemas.user import TokenPayload

security = HTTPBearer(auto_error=False)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def create_access_token(settings: Settings, user: User) -> str:
    expires = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    claims = {"sub": user.id, "email": user.email, "exp": expires, "type": "access"}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_token(settings: Settings, token: str) -> TokenPayload | None:
    """Verified claims, or None for a bad signature, an expired token or missing claims."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return TokenPayload(sub=claims["sub"], email=claims["email"], exp=claims["exp"])
    except (JWTError, KeyError):
        return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> User:
    if not credentials:
        raise _unauthorized("Access token required")
    payload = decode_token(settings, credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")
    user = db.query(User).filter(User.id == payload.sub).first()
    if not user:
        raise _unauthorized("User not found")
    return user
