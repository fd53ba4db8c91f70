"""User directory: existence checks, profile lookup and registration."""
import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from errors import NotFoundError, ServiceError, ValidationError
from models import User

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def validate_registration(username: str | None, email: str | None) -> tuple[str, str]:
    """Normalize and check a registration, returning (username, email)."""
    username = (username or "").strip()
    email = (email or "").strip().lower()
    errors = {}

    if not username:
        errors["username"] = "Username is required"
    elif len(username) < 3:
        errors["username"] = "Username must be at least 3 characters"
    elif len(username) > 30:
        errors["username"] = "Username cannot exceed 30 characters"
    elif not USERNAME_PATTERN.match(username):
        errors["username"] = "Username can only contain letters, numbers, underscores and hyphens"

    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(email):
        errors["email"] = "Please provide a valid email address"

    if errors:
        raise ValidationError(errors)
    return username, email


class UserDirectory:
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int | None) -> User | None:
        if user_id is None:
            return None
        try:
            return self.session.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Error looking up user {user_id}: {str(e)}")
            raise ServiceError() from e

    def user_exists(self, user_id: int | None) -> bool:
        return self.get(user_id) is not None

    def find_by_username(self, username: str | None) -> User:
        username = (username or "").strip()
        if not username:
            raise ValidationError({"username": "Username is required"})
        try:
            user = self.session.exec(select(User).where(User.username == username)).first()
        except SQLAlchemyError as e:
            logger.error(f"Error looking up username {username}: {str(e)}")
            raise ServiceError() from e
        if not user:
            raise NotFoundError({"username": "User not found with this username"})
        return user

    def register(self, username: str | None, email: str | None) -> User:
        username, email = validate_registration(username, email)
        logger.info(f"Register request for username: {username}")

        try:
            errors = {}
            if self.session.exec(select(User).where(User.username == username)).first():
                errors["username"] = "Username is already taken"
            if self.session.exec(select(User).where(User.email == email)).first():
                errors["email"] = "Email is already in use"
            if errors:
                raise ValidationError(errors)

            user = User(username=username, email=email)
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        except IntegrityError as e:
            # Lost a race with a concurrent registration
            self.session.rollback()
            raise ValidationError({"username": "Username is already taken"}) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error registering user: {str(e)}")
            raise ServiceError() from e

        logger.info(f"Registered user {user.id} ({user.username})")
        return user
