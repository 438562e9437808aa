from datetime import datetime, timedelta, timezone
from typing import Optional
import uuid
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, HashingError, VerificationError
from jose import JWTError, jwt
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from fastapi import Depends, HTTPException, Request, Security
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.dependencies import get_db
from app.config.config import settings
from app.core.exceptions import UnauthorizedError
from app.core.utils import logger
from app.models.user_model import User


SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES


ph = PasswordHasher(
    time_cost=3, memory_cost=65536, parallelism=1, hash_len=32, salt_len=16
)

security = HTTPBearer(
    scheme_name="Bearer Token", description="Enter your JWT token", auto_error=False
)


def get_password_hash(password: str) -> str:
    """Hash a plaintext password using Argon2"""
    try:
        return ph.hash(password)
    except HashingError as e:
        logger.log_error({"event_type": "password_hashing_failed", "error": str(e)})
        raise HTTPException(status_code=500, detail="Password hashing failed") from e


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against an Argon2 hashed password"""
    try:
        ph.verify(hashed_password, plain_password)
        return True
    except VerifyMismatchError:
        return False
    except VerificationError as e:
        logger.log_error(
            {
                "event_type": "password_verification_error",
                "error": str(e),
            }
        )
        return False


class TokenManager:
    """Issues and decodes bearer access tokens."""

    @staticmethod
    def create_access_token(
        data: dict,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def create_user_token(user: User) -> str:
        return TokenManager.create_access_token(
            data={"sub": str(user.id), "role": user.role}
        )

    @staticmethod
    def decode_token(token: str) -> dict:
        """Decode and verify a JWT token"""
        try:
            return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except JWTError as e:
            raise ValueError("Invalid or expired token") from e


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to an active user.

    Args:
        request: FastAPI request object
        credentials: HTTP Authorization credentials containing the Bearer token
        db: Database session

    Returns:
        User: Authenticated user (a Mother, HealthWorker or Administrator)

    Raises:
        UnauthorizedError: If the token is missing, invalid, expired, or the
            user no longer exists or is inactive
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Not authenticated")

    try:
        payload = TokenManager.decode_token(credentials.credentials)

        if payload.get("type") != "access":
            raise UnauthorizedError("Invalid token type")

        subject = payload.get("sub")
        if subject is None:
            raise UnauthorizedError("Token does not contain user ID")

        user_id = uuid.UUID(subject)

    except ValueError as e:
        logger.log_warning(
            {
                "event_type": "invalid_auth_credentials",
                "error": str(e),
                "path": request.url.path,
            }
        )
        raise UnauthorizedError()

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise UnauthorizedError("User not found")

    if not user.is_active:
        raise UnauthorizedError("Account is inactive")

    return user
