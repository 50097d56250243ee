from datetime import datetime, timezone

import bcrypt

from shortener.models.db_operation import add_record, select_one_or_none, update_records
from shortener.models.schema.user import UserEntry
from shortener.schemas.auth import UserPublic


class AuthError(ValueError):
    """Raised for credential and account-state problems."""


class AccountBannedError(AuthError):
    pass


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        return False


class UserStore:
    def get_by_email(self, email: str) -> UserEntry | None:
        return select_one_or_none("user", email=_normalize_email(email))

    def get_user(self, user_id: int) -> UserEntry | None:
        return select_one_or_none("user", id=user_id)

    def exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def create_user(
        self, name: str, email: str, password_hash: str, role: str = "user"
    ) -> UserEntry:
        if self.exists(email):
            raise AuthError("Email already registered")
        now = datetime.now(timezone.utc)
        return add_record(
            "user",
            name=name,
            email=_normalize_email(email),
            password_hash=password_hash,
            role=role if role in ("user", "admin") else "user",
            status="active",
            created_at=now,
            updated_at=now,
        )

    def authenticate(self, email: str, password: str) -> UserEntry:
        entry = self.get_by_email(email)
        if entry is None or not verify_password(password, entry.password_hash):
            raise AuthError("Invalid credentials")
        if entry.status == "banned":
            raise AccountBannedError("Your account has been banned. Please contact support.")
        now = datetime.now(timezone.utc)
        update_records("user", values={"last_login_at": now}, id=entry.id)
        entry.last_login_at = now
        return entry

    def set_password(self, email: str, password: str) -> bool:
        now = datetime.now(timezone.utc)
        updated = update_records(
            "user",
            values={"password_hash": hash_password(password), "updated_at": now},
            email=_normalize_email(email),
        )
        return updated > 0

    def to_public(self, entry: UserEntry) -> UserPublic:
        return UserPublic(
            id=entry.id,
            name=entry.name,
            email=entry.email,
            role=entry.role or "user",
            created_at=entry.created_at,
        )


user_store = UserStore()
