from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from shadowlog.auth import create_access_token, get_current_user, hash_password, verify_password
from shadowlog.config import Settings
from shadowlog.database import get_db
from shadowlog.dependencies import get_app_settings
from shadowlog.models.user import User
from shadowlog.schemas.user import AuthResponse, LoginRequest, RegisterRequest, TokenResponse, UserResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _find_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email).first()


def _auth_response(settings: Settings, user: User) -> AuthResponse:
    return AuthResponse(
        access_token=create_access_token(settings, user),
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Create an account and return an access token."""
    email = body.email.strip().lower()
    if _find_by_email(db, email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")
    user = User(email=email, password=hash_password(body.password), name=body.name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return _auth_response(settings, user)


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Login with email and password."""
    user = _find_by_email(db, body.email.strip().lower())
    if not user or not verify_password(body.password, user.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return _auth_response(settings, user)


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return user


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
):
    """New token for a user that still exists."""
    return TokenResponse(access_token=create_access_token(settings, user))
