"""
User store on top of DBStorage.

The unique constraint on users.email is what settles concurrent duplicate
registrations; a violation surfaces as ConflictError, never as a 500.
"""
from __future__ import annotations

import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import undefer

from models.user import Role, User
from utils.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, storage, uploader=None):
        self.storage = storage
        self.uploader = uploader

    def _query(self):
        return self.storage.get_session().query(User)

    def find_by_email(self, email: str) -> User | None:
        return self._query().filter(User.email == email).first()

    def find_by_email_with_password(self, email: str) -> User | None:
        """Same as find_by_email but loads the password hash in the same query."""
        return self._query().options(undefer(User.password)).filter(User.email == email).first()

    def find_by_id(self, user_id: str) -> User | None:
        return self.storage.get(User, str(user_id))

    def find_by_phone_number(self, phone_number: str) -> User | None:
        return self._query().filter(User.phone_number == phone_number).first()

    def list(self) -> List[User]:
        return self._query().order_by(User.created_at.asc()).all()

    def save(self, user: User) -> User:
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError as exc:
            logger.info("Unique constraint rejected user %s", user.email)
            raise ConflictError("This email already registered!") from exc
        return user

    def create(self, full_name: str, email: str, password_hash: str, role: Role = Role.CUSTOMER) -> User:
        user = User(full_name=full_name, email=email, password=password_hash, role=role)
        return self.save(user)

    def update_password(self, user_id: str, password_hash: str) -> User:
        user = self.find_by_id(user_id)
        if not user:
            raise NotFoundError()
        user.password = password_hash
        return self.save(user)

    def delete(self, user_id: str) -> None:
        user = self.find_by_id(user_id)
        if not user:
            raise NotFoundError()
        self.storage.delete(user)
        self.storage.save()

    def upload_avatar(self, user: User, local_path: str) -> User:
        result = self.uploader.upload(local_path)
        user.avatar = result["url"]
        return self.save(user)
