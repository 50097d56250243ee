from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import logging
import secrets

from sqlalchemy import select

from shortener.config import settings
from shortener.database import session_scope
from shortener.models.db_operation import (
    add_record,
    delete_expired_records,
    delete_records,
)
from shortener.models.schema.otp import OTP_PURPOSES, OtpEntry

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class OtpRecord:
    id: int
    email: str
    code: str
    purpose: str
    expires_at: datetime
    meta: dict = field(default_factory=dict)
    created_at: datetime | None = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(entry: OtpEntry) -> OtpRecord:
    return OtpRecord(
        id=entry.id,
        email=entry.email,
        code=entry.code,
        purpose=entry.purpose,
        expires_at=as_utc(entry.expires_at),
        meta=dict(entry.meta or {}),
        created_at=as_utc(entry.created_at) if entry.created_at else None,
    )


class OtpStore:
    def __init__(self, ttl_minutes: int, code_length: int) -> None:
        self._ttl_minutes = ttl_minutes
        self._code_length = code_length

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=self._ttl_minutes)

    def create_otp(
        self,
        email: str,
        code: str,
        purpose: str,
        expires_at: datetime,
        meta: dict | None = None,
    ) -> OtpRecord:
        """Persist a new code. Earlier codes for the same email/purpose are kept."""
        if purpose not in OTP_PURPOSES:
            raise ValueError(f"Unsupported OTP purpose '{purpose}'")
        entry = add_record(
            "otp",
            email=normalize_email(email),
            code=code,
            purpose=purpose,
            expires_at=expires_at,
            meta=dict(meta or {}),
        )
        return _to_record(entry)

    def issue(self, email: str, purpose: str, meta: dict | None = None) -> OtpRecord:
        """Replace any outstanding codes for email/purpose with a fresh one."""
        self.discard(email, purpose)
        return self.create_otp(
            email,
            self.generate_code(),
            purpose,
            _utcnow() + self.ttl,
            meta=meta,
        )

    def find_valid(
        self, email: str, purpose: str, code: str, now: datetime | None = None
    ) -> OtpRecord | None:
        now = now or _utcnow()
        with session_scope() as session:
            entry = session.execute(
                select(OtpEntry)
                .where(
                    OtpEntry.email == normalize_email(email),
                    OtpEntry.purpose == purpose,
                    OtpEntry.code == code.strip(),
                    OtpEntry.expires_at > now,
                )
                .order_by(OtpEntry.created_at.desc(), OtpEntry.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            if entry is None:
                return None
            record = _to_record(entry)
        # The sweeper may not have run yet, so expiry is checked on every read.
        if record.expires_at <= now:
            return None
        return record

    def latest_valid(
        self, email: str, purpose: str, now: datetime | None = None
    ) -> OtpRecord | None:
        now = now or _utcnow()
        with session_scope() as session:
            entry = session.execute(
                select(OtpEntry)
                .where(
                    OtpEntry.email == normalize_email(email),
                    OtpEntry.purpose == purpose,
                    OtpEntry.expires_at > now,
                )
                .order_by(OtpEntry.created_at.desc(), OtpEntry.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            return _to_record(entry) if entry is not None else None

    def consume(self, record_id: int) -> bool:
        return delete_records("otp", id=record_id) > 0

    def discard(self, email: str, purpose: str) -> int:
        return delete_records("otp", email=normalize_email(email), purpose=purpose)

    def purge_expired(self, now: datetime | None = None) -> int:
        removed = delete_expired_records("otp", now or _utcnow())
        if removed:
            LOGGER.info("Purged %s expired OTP record(s)", removed)
        return removed

    def generate_code(self) -> str:
        value = secrets.randbelow(10**self._code_length)
        return str(value).zfill(self._code_length)


otp_store = OtpStore(settings.otp_ttl_minutes, settings.otp_length)
