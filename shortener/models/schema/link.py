from sqlalchemy import Column, Integer, String

from shortener.database import Base, UTCDateTime

LINK_STATUSES = ("active", "blocked", "expired")


class LinkEntry(Base):
    __tablename__ = "links"

    id = Column(Integer, primary_key=True)
    slug = Column(String(64), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=True)
    destination = Column(String(2048), nullable=False)
    status = Column(String(16), nullable=False, default="active", index=True)
    clicks = Column(Integer, nullable=False, default=0)
    max_clicks = Column(Integer, nullable=False, default=0)
    schedule_start = Column(UTCDateTime, nullable=True)
    expires_at = Column(UTCDateTime, nullable=True)
    owner_email = Column(String(255), nullable=True, index=True)
    created_at = Column(UTCDateTime, nullable=False, index=True)
    updated_at = Column(UTCDateTime, nullable=False)
