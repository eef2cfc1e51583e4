from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Response
from jose import JWTError, jwt
from passlib.context import CryptContext

import config
from errors import AuthFailure

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)
    return encoded_jwt


def decode_access_token(token: Optional[str]) -> str:
    """Return the user id carried by a session token, or raise AuthFailure."""
    if not token:
        raise AuthFailure("Unauthorized - No Token Provided")
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise AuthFailure("Unauthorized - Invalid Token")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthFailure("Unauthorized - Invalid Token")
    return user_id


def set_session_cookie(response: Response, user_id: str) -> str:
    token = create_access_token({"sub": user_id})
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="strict",
        secure=not config.is_development(),
    )
    return token


def clear_session_cookie(response: Response) -> None:
    # Overwrite with an already-expired value so the browser drops it.
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value="",
        max_age=0,
        httponly=True,
        samesite="strict",
        secure=not config.is_development(),
    )
