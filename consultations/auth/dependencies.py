from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from consultations.auth import jwt_handler
from consultations.core.errors import Forbidden, Unauthenticated
from consultations.database import get_db
from consultations.models.user import User

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Not authenticated.")

    user_id = jwt_handler.user_id_from_token(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise Unauthenticated("Token is valid but user not found.")
    if not user.is_active:
        raise Unauthenticated("User account is deactivated.")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise Forbidden("Access denied. Admin privileges required.")
    return current_user


def require_client(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "client":
        raise Forbidden("Access denied. Client privileges required.")
    return current_user
