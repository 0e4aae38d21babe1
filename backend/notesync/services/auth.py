from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt

from notesync.config import settings
from notesync.schemas.auth import TokenData


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def create_access_token(user_id: str) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm="HS256")


def decode_token(token: str) -> TokenData:
    payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"])
    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise JWTError("missing sub")
    return TokenData(user_id=user_id)
