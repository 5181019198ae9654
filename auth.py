"""
Password hashing, JWT bearer tokens and the auth-state channel.

Listeners registered with ``auth_channel.on_auth_state_change`` receive
``(event, user)`` whenever a user signs in, signs out or updates their
account. ``event`` is one of ``SIGNED_IN``, ``SIGNED_OUT``, ``USER_UPDATED``.
"""
import logging
import os
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from database import User, get_db

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
USER_UPDATED = "USER_UPDATED"

bearer_scheme = HTTPBearer(auto_error=False)

AuthListener = Callable[[str, Optional[dict]], None]


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def issue_token(user: User) -> str:
    return create_access_token(
        data={"sub": user.id},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def user_payload(user: User) -> dict:
    return {"id": user.id, "email": user.email, "full_name": user.full_name}


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise unauthorized
    user_id = payload.get("sub")
    user = db.query(User).filter(User.id == user_id).first() if user_id else None
    if user is None:
        raise unauthorized
    return user


class Subscription:
    def __init__(self, channel: "AuthChannel", listener: AuthListener):
        self._channel = channel
        self._listener = listener

    def unsubscribe(self) -> None:
        self._channel._remove(self._listener)


class AuthChannel:
    def __init__(self):
        self._listeners: List[AuthListener] = []
        self._lock = threading.Lock()

    def on_auth_state_change(self, listener: AuthListener) -> Subscription:
        with self._lock:
            self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: AuthListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def publish(self, event: str, user: Optional[dict]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        logger.info("Auth event %s for %s", event, (user or {}).get("id"))
        for listener in listeners:
            try:
                listener(event, user)
            except Exception:
                logger.exception("Auth listener failed on %s", event)


auth_channel = AuthChannel()
