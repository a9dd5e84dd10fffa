"""User directory: lookups, just-in-time provisioning and credential updates."""

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from switchyard.core.exceptions import (
    InvalidUsernameError,
    StoreFailureError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from switchyard.core.security import hash_password, is_valid_username
from switchyard.models import Role, User, UserRole
from switchyard.schemas.permissions import RoleType

logger = logging.getLogger(__name__)


class UserDirectory:
    """Persistence of user records on one SQLAlchemy session. Writes commit immediately."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, user_id: int) -> User:
        try:
            user = self.session.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as e:
            raise StoreFailureError("Failed to load user", cause=e) from e
        if user is None:
            raise UserNotFoundError()
        return user

    def find_by_username(self, username: str) -> User:
        try:
            user = self.session.query(User).filter(User.username == username).first()
        except SQLAlchemyError as e:
            raise StoreFailureError("Failed to load user", cause=e) from e
        if user is None:
            raise UserNotFoundError()
        return user

    def list_users(self) -> list[User]:
        try:
            return self.session.query(User).order_by(User.id).all()
        except SQLAlchemyError as e:
            raise StoreFailureError("Failed to list users", cause=e) from e

    def create(
        self,
        username: str,
        password: str | None = None,
        firstname: str = "",
        lastname: str = "",
        active: bool = True,
    ) -> User:
        """
        Create a user and its personal 'user' role.

        Users created without a password can only sign in through OpenID.
        Raises InvalidUsernameError unless the username is a code or an email.
        """
        if not is_valid_username(username):
            raise InvalidUsernameError()
        user = User(
            username=username,
            password_hash=hash_password(password) if password else "",
            firstname=firstname,
            lastname=lastname,
            active=active,
            refresh_token_hash="",
        )
        try:
            self.session.add(user)
            self.session.flush()
            self_role = Role(code=username, type=RoleType.USER.value)
            self.session.add(self_role)
            self.session.flush()
            self.session.add(UserRole(user_id=user.id, role_id=self_role.id))
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise UserAlreadyExistsError(f"User '{username}' already exists") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreFailureError("Failed to create user", cause=e) from e
        self.session.refresh(user)
        logger.info("User created", extra={"user_id": user.id, "username": username})
        return user

    def find_or_create(self, template: User) -> User:
        """Return the user with template.username, creating it from template if absent."""
        try:
            return self.find_by_username(template.username)
        except UserNotFoundError:
            pass
        try:
            return self.create(
                username=template.username,
                firstname=template.firstname or "",
                lastname=template.lastname or "",
                active=True if template.active is None else bool(template.active),
            )
        except UserAlreadyExistsError:
            # Created concurrently by another request.
            return self.find_by_username(template.username)

    def _update_column(self, user_id: int, **values: object) -> None:
        try:
            result = self.session.execute(
                update(User).where(User.id == user_id).values(**values)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreFailureError("Failed to update user", cause=e) from e
        if result.rowcount == 0:
            raise UserNotFoundError()
        self.session.expire_all()

    def update_password(self, user_id: int, plain_password: str) -> None:
        self._update_column(user_id, password_hash=hash_password(plain_password))

    def update_refresh_token_hash(self, user_id: int, token_hash: str) -> None:
        """Store the digest of the outstanding refresh token; "" revokes it."""
        self._update_column(user_id, refresh_token_hash=token_hash)

    def set_active(self, user_id: int, active: bool) -> None:
        self._update_column(user_id, active=active)
