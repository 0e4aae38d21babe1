from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from notesync.config import settings
from notesync.database import get_db
from notesync.dependencies import get_current_user
from notesync.middleware.rate_limit import rate_limiter
from notesync.models import User
from notesync.schemas.auth import AuthConfig, Token, UserCreate, UserLogin, UserResponse
from notesync.services.auth import create_access_token, hash_password, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/config", response_model=AuthConfig)
async def auth_config() -> AuthConfig:
    return AuthConfig(allow_registration=settings.allow_registration)


@router.post("/register", response_model=Token)
@rate_limiter
async def register(request: Request, data: UserCreate, db: AsyncSession = Depends(get_db)) -> Token:
    if not settings.allow_registration:
        raise HTTPException(status_code=403, detail="Registration is disabled")
    result = await db.execute(select(User).where(User.email == data.email))
    existing = result.scalar_one_or_none()
    if existing is not None:
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(
        email=data.email,
        hashed_password=hash_password(data.password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return Token(access_token=create_access_token(user.id))


@router.post("/login", response_model=Token)
@rate_limiter
async def login(request: Request, data: UserLogin, db: AsyncSession = Depends(get_db)) -> Token:
    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return Token(access_token=create_access_token(user.id))


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> User:
    return user
