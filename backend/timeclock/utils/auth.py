from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from timeclock.db import get_db
from bson import ObjectId
from bson.errors import InvalidId
import os
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()

SECRET_KEY = os.getenv("SECRET_KEY", "testing_secret_key_for_development_only")
ALGORITHM = "HS256"

CLOCKING_ROLES = ["employee", "manager", "administrator"]

async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Resolve the bearer token to an active user document.

    Tokens are issued elsewhere; this only verifies them.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        token_type: str = payload.get("type")

        logger.debug("Validating token for subject: %s", user_id)

        if user_id is None or token_type != "access":
            raise credentials_exception

    except JWTError:
        raise credentials_exception

    db = get_db()
    user = await db["users"].find_one({"_id": user_id})

    # Fall back to ObjectId format
    if user is None:
        try:
            user = await db["users"].find_one({"_id": ObjectId(user_id)})
        except InvalidId:
            user = None

    if user is None:
        raise credentials_exception

    if not user.get("isActive", True):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    return user

def verify_role(required_roles: list):
    def role_checker(current_user: dict = Depends(get_current_user)):
        if current_user.get("role") not in required_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user
    return role_checker

# Role-specific dependencies
def require_admin(current_user: dict = Depends(get_current_user)):
    return verify_role(["administrator"])(current_user)

def require_manager_or_admin(current_user: dict = Depends(get_current_user)):
    return verify_role(["manager", "administrator"])(current_user)
