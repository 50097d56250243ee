from sqlalchemy import JSON, CheckConstraint, Column, Integer, String

from shortener.database import Base, UTCDateTime, utcnow

OTP_PURPOSES = ("register", "reset")


class OtpEntry(Base):
    __tablename__ = "otp_codes"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    code = Column(String(16), nullable=False)
    purpose = Column(String(16), nullable=False)
    # Rows past expires_at are removed by ExpirySweeper with no grace period.
    expires_at = Column(UTCDateTime, nullable=False, index=True)
    meta = Column(JSON, nullable=False, default=dict)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Ids of consumed codes must never be handed to a newer code.
    __table_args__ = (
        CheckConstraint(
            "purpose IN ('register', 'reset')", name="ck_otp_codes_purpose"
        ),
        {"sqlite_autoincrement": True},
    )
