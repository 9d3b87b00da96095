"""Shared FastAPI dependencies."""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from woodpecker.config import settings
from woodpecker.exceptions import UnauthorizedError
from woodpecker.models.base import get_db
from woodpecker.models.models import User
from woodpecker.services.user_service import UserService


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the caller forwarded by the identity layer. Fails closed."""
    external_id = request.headers.get(settings.api.identity_header)
    if not external_id:
        raise UnauthorizedError()

    user = UserService(db).get_user_by_external_id(external_id)
    if user is None:
        raise UnauthorizedError("Unknown user")
    return user
