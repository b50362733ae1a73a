# src/core/auth_dependencies.py
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from src.core.database import get_db
from src.core.security import SecurityUtils
from src.models.users import UserRole, User


security = HTTPBearer(auto_error=False)


def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )

    payload = SecurityUtils.verify_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found or inactive"
        )

    return user


def require_role(allowed_user_roles: list[UserRole]):
    """
    Dependency restricting a route to the given roles

    Examples:
    - require_role([UserRole.CUSTOMER])  # Only customers
    - require_role([UserRole.RETAILER, UserRole.WHOLESALER])  # Any seller
    """
    def role_checker(
        current_account: User = Depends(get_current_account)
    ) -> User:
        if current_account.role not in allowed_user_roles:
            raise HTTPException(
                403,
                f"User role '{current_account.role.value}' not authorized. Required: {[r.value for r in allowed_user_roles]}"
            )
        return current_account

    return role_checker
