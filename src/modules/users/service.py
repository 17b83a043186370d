"""
Users Service
=============

Purpose
-------
Account lifecycle: registration, profile reads, deletion and login.

Domain
------
- Registration creates the user with zero balances and one empty stats row
  in a single transaction
- Lookups accept a user id, name or email (in that order)
- Passwords are stored as SHA-256 hex digests and never returned
- Login issues a signed bearer token

Update and List are not part of the service surface yet and report
UNIMPLEMENTED.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import TYPE_CHECKING, Any, Dict

import jwt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.core.exceptions import ConfigurationError
from src.core.validation.input_validator import MAX_NAME_LENGTH, InputValidator
from src.database.models import User, UserStats
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    AlreadyExistsError,
    NotFoundError,
    UnimplementedError,
    ValidationError,
)
from src.modules.users.repository import UserRepository, UserStatsRepository

if TYPE_CHECKING:
    from logging import Logger

    from src.core.auth.tokens import TokenIssuer
    from src.core.database.service import DatabaseService

INVALID_LOGIN = "Invalid login/password"


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def serialize_user(user: User) -> Dict[str, Any]:
    """Public view of a user; the password digest is never included."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "coins": user.coins,
        "gems": user.gems,
        "is_admin": user.is_admin,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


class UsersService(BaseService):
    """
    Public Methods
    --------------
    - create() -> Register a new account
    - read() -> Profile by id/name/email
    - delete() -> Remove an account (idempotent)
    - update() / list() -> UNIMPLEMENTED
    - login() -> Issue a bearer token
    - get_version() -> Running service version
    """

    def __init__(
        self,
        db: DatabaseService,
        token_issuer: TokenIssuer,
        logger: Logger,
        service_version: str = "",
    ) -> None:
        super().__init__(db, logger)
        self._tokens = token_issuer
        self._service_version = service_version
        self._users = UserRepository()
        self._stats = UserStatsRepository()

    # ========================================================================
    # Registration
    # ========================================================================

    async def create(self, name: str, email: str, password: str) -> Dict[str, Any]:
        """
        Register a user.

        Raises:
            ValidationError: blank or oversized fields
            AlreadyExistsError: name or email already taken (name checked first)
        """
        name = InputValidator.validate_string(name, "name", max_length=MAX_NAME_LENGTH)
        email = InputValidator.validate_email(email)
        password = InputValidator.validate_string(password, "password")

        self.log_operation("create_user", user_name=name, email=email)

        try:
            async with self.db.get_transaction() as session:
                if await self._users.exists(session, User.name == name):
                    raise AlreadyExistsError("User", "User with such name already exists")
                if await self._users.exists(session, User.email == email):
                    raise AlreadyExistsError("User", "User with such email already exists")

                user = self._users.add(
                    session,
                    User(
                        name=name,
                        email=email,
                        password=hash_password(password),
                        coins=0,
                        gems=0,
                        is_admin=False,
                    ),
                )
                await self._users.flush(session)
                self._stats.add(session, UserStats(user_id=user.id))
                await self._stats.flush(session)
                await session.refresh(user)

                result = serialize_user(user)

        except IntegrityError as exc:
            # Concurrent registration won the unique index race
            self.log.info(
                "User registration hit a unique constraint",
                extra={"user_name": name, "email": email, "error_type": type(exc).__name__},
            )
            raise AlreadyExistsError(
                "User", "User with such name or email already exists"
            ) from exc
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "create_user", exc, "Could not create new user", user_name=name
            ) from exc

        self.log.info(
            "User registered",
            extra={"user_id": result["id"], "user_name": name},
        )
        return result

    # ========================================================================
    # Reads
    # ========================================================================

    async def read(self, provided_id: str) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: no user matches by id, name or email
        """
        provided_id = InputValidator.validate_identifier(provided_id)
        self.log_operation("read_user", provided_id=provided_id)

        try:
            async with self.db.get_session() as session:
                user = await self._users.find_by_provided_id(session, provided_id)
                if user is None:
                    raise NotFoundError("User", provided_id)
                return serialize_user(user)
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "read_user", exc, "Could not find user", provided_id=provided_id
            ) from exc

    async def update(self, user_id: str, **fields: Any) -> Dict[str, Any]:
        self.log_operation("update_user", user_id=user_id)
        raise UnimplementedError("Users/Update")

    async def list(self) -> Dict[str, Any]:
        self.log_operation("list_users")
        raise UnimplementedError("Users/List")

    # ========================================================================
    # Deletion
    # ========================================================================

    async def delete(self, user_id: str) -> None:
        """Delete by id. Missing users are not an error."""
        user_id = InputValidator.validate_identifier(user_id)
        self.log_operation("delete_user", user_id=user_id)

        try:
            async with self.db.get_transaction() as session:
                deleted = await self._users.delete_where(session, User.id == user_id)
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "delete_user", exc, "Could not delete user", user_id=user_id
            ) from exc

        self.log.info("User deleted", extra={"user_id": user_id, "deleted": deleted})

    # ========================================================================
    # Login
    # ========================================================================

    async def login(self, provided_id: str, password: str) -> Dict[str, Any]:
        """
        Verify credentials and issue a token.

        Every credential failure reports the same message so callers cannot
        tell which part was wrong.

        Raises:
            ValidationError: unknown user or wrong password
            InternalError: token could not be signed
        """
        self.log_operation("login", provided_id=provided_id)

        if not provided_id or not password:
            raise ValidationError("login", INVALID_LOGIN)

        try:
            async with self.db.get_session() as session:
                user = await self._users.find_by_provided_id(session, provided_id)
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "login", exc, "Unable to login", provided_id=provided_id
            ) from exc

        if user is None:
            self.log.info("Login failed - unknown user", extra={"provided_id": provided_id})
            raise ValidationError("login", INVALID_LOGIN)

        if not hmac.compare_digest(user.password, hash_password(password)):
            self.log.info("Login failed - wrong password", extra={"user_id": user.id})
            raise ValidationError("login", INVALID_LOGIN)

        try:
            issued = self._tokens.issue(
                user_id=user.id,
                username=user.name,
                user_email=user.email,
                is_admin=user.is_admin,
            )
        except (ConfigurationError, jwt.PyJWTError, ValueError, TypeError) as exc:
            raise self.storage_failure(
                "login", exc, "Unable to login", user_id=user.id
            ) from exc

        self.log.info("User logged in", extra={"user_id": user.id})
        return {
            "token": issued.token,
            "expires_at": issued.expires_at,
            "is_admin": user.is_admin,
        }

    # ========================================================================
    # Service info
    # ========================================================================

    def get_version(self) -> Dict[str, str]:
        return {"version": self._service_version}
