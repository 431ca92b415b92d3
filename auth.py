import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

from config import Settings, get_settings
from database import USERS, get_db, parse_document
from permissions import has_permission
from schemas import UserDocument

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# Utilities

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    data: dict,
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _user_from_token(token: str, db: Database, settings: Settings) -> Dict[str, Any]:
    credentials_exception = HTTPException(
        status_code=401,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id: Optional[str] = payload.get("sub")
        if user_id is None or not ObjectId.is_valid(user_id):
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    doc = db[USERS].find_one({"_id": ObjectId(user_id)})
    if not doc:
        raise credentials_exception
    user = parse_document(UserDocument, doc).model_dump()
    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account is disabled")
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    return _user_from_token(token, db, settings)


async def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[Dict[str, Any]]:
    if not token:
        return None
    try:
        return _user_from_token(token, db, settings)
    except HTTPException as e:
        # A stale or garbled token reads as anonymous; a disabled account does not
        if e.status_code != 401:
            raise
        logger.debug("Ignoring invalid bearer token on an optional route")
        return None


def require_permission(flag: str):
    """Dependency that lets the request through only if the stored record grants flag."""
    async def checker(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if not has_permission(user, flag):
            logger.info("User %s refused: missing %s", user.get("id"), flag)
            raise HTTPException(status_code=403, detail="Not enough permissions")
        return user
    return checker
