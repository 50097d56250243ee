import asyncio
import logging
import math
import re
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from shortener.config import settings
from shortener.database import session_scope
from shortener.models.db_operation import delete_records, select_one_or_none
from shortener.models.schema.link import LINK_STATUSES, LinkEntry
from shortener.schemas.links import AdminLinksPage, LinkCreate, LinkResponse, LinkUpdate
from shortener.services.otp import as_utc

LOGGER = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
NO_STATUS_FILTER = {"", "all", "all status"}
SLUG_ALPHABET = string.ascii_letters + string.digits
GENERATED_SLUG_LENGTH = 7
# Largest row offset every supported backend accepts as a signed 64-bit bind.
MAX_SKIP = 2**62

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class LinkError(ValueError):
    pass


class LinkNotFoundError(LinkError):
    pass


class LinkBlockedError(LinkError):
    pass


class LinkGoneError(LinkError):
    pass


class LinkNotActiveError(LinkNotFoundError):
    pass


class SlugTakenError(LinkError):
    pass


class LinkQueryError(RuntimeError):
    pass


@dataclass(frozen=True)
class AdminLinkQuery:
    page: int
    limit: int
    search: str
    status: str | None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def parse_positive_int(raw_value, default: int) -> int:
    """Read the leading integer of ``raw_value``; fall back to ``default``.

    Missing, non-numeric, zero and negative values all yield ``default``.
    """
    if raw_value is None:
        return default
    if isinstance(raw_value, int) and not isinstance(raw_value, bool):
        value = raw_value
    else:
        match = _LEADING_INT.match(str(raw_value))
        if match is None:
            return default
        value = int(match.group(1))
    return value if value >= 1 else default


def normalize_status(raw_status) -> str | None:
    normalized = str(raw_status if raw_status is not None else "").lower()
    if normalized.strip() in NO_STATUS_FILTER:
        return None
    return normalized


def build_admin_query(
    page=None, limit=None, search=None, status=None, max_limit: int | None = None
) -> AdminLinkQuery:
    parsed_limit = parse_positive_int(limit, DEFAULT_LIMIT)
    if max_limit:
        parsed_limit = min(parsed_limit, max_limit)
    # Pages past the bound are empty anyway; keep skip bindable.
    parsed_page = min(parse_positive_int(page, DEFAULT_PAGE), MAX_SKIP // parsed_limit)
    return AdminLinkQuery(
        page=parsed_page,
        limit=parsed_limit,
        search=(search or "").strip(),
        status=normalize_status(status),
    )


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def link_filters(query: AdminLinkQuery) -> list:
    conditions = []
    if query.search:
        pattern = f"%{_escape_like(query.search)}%"
        conditions.append(
            or_(
                LinkEntry.slug.ilike(pattern, escape="\\"),
                LinkEntry.title.ilike(pattern, escape="\\"),
                LinkEntry.destination.ilike(pattern, escape="\\"),
            )
        )
    if query.status is not None:
        conditions.append(LinkEntry.status == query.status)
    return conditions


def total_pages_for(total_links: int, limit: int) -> int:
    return max(1, math.ceil(total_links / limit))


def short_url_for(slug: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}/{slug}"


def to_response(entry: LinkEntry) -> LinkResponse:
    return LinkResponse(
        id=entry.id,
        slug=entry.slug,
        title=entry.title,
        destination=entry.destination,
        status=entry.status,
        clicks=entry.clicks or 0,
        max_clicks=entry.max_clicks or 0,
        schedule_start=as_utc(entry.schedule_start) if entry.schedule_start else None,
        expires_at=as_utc(entry.expires_at) if entry.expires_at else None,
        owner_email=entry.owner_email,
        short_url=short_url_for(entry.slug),
        created_at=as_utc(entry.created_at),
        updated_at=as_utc(entry.updated_at),
    )


class LinkStore:
    def __init__(self, max_limit: int) -> None:
        self._max_limit = max_limit

    async def list_links(
        self, page=None, limit=None, search=None, status=None
    ) -> AdminLinksPage:
        query = build_admin_query(page, limit, search, status, self._max_limit)
        conditions = link_filters(query)
        # Independent reads: the count may come from a slightly different
        # snapshot than the page on a table that is being written to.
        try:
            total_links, links = await asyncio.gather(
                run_in_threadpool(self._count, conditions),
                run_in_threadpool(self._fetch_page, conditions, query),
            )
        except SQLAlchemyError as exc:
            raise LinkQueryError("Failed to fetch links") from exc
        return AdminLinksPage(
            links=links,
            page=query.page,
            total_pages=total_pages_for(total_links, query.limit),
            total_links=total_links,
        )

    def _count(self, conditions: list) -> int:
        with session_scope() as session:
            return session.execute(
                select(func.count()).select_from(LinkEntry).where(*conditions)
            ).scalar_one()

    def _fetch_page(self, conditions: list, query: AdminLinkQuery) -> list[LinkResponse]:
        with session_scope() as session:
            entries = session.execute(
                select(LinkEntry)
                .where(*conditions)
                .order_by(LinkEntry.created_at.desc(), LinkEntry.id.desc())
                .offset(query.skip)
                .limit(query.limit)
            ).scalars().all()
            return [to_response(entry) for entry in entries]

    def create_link(
        self, payload: LinkCreate, owner_email: str | None = None
    ) -> LinkResponse:
        now = datetime.now(timezone.utc)
        slug = payload.slug or self._generate_unique_slug()
        with session_scope() as session:
            existing = session.execute(
                select(LinkEntry.id).where(LinkEntry.slug == slug)
            ).scalar_one_or_none()
            if existing is not None:
                raise SlugTakenError("Slug already in use")
            entry = LinkEntry(
                slug=slug,
                title=payload.title,
                destination=payload.destination,
                status="active",
                clicks=0,
                max_clicks=payload.max_clicks,
                schedule_start=payload.schedule_start,
                expires_at=payload.expires_at,
                owner_email=owner_email,
                created_at=now,
                updated_at=now,
            )
            session.add(entry)
            try:
                session.flush()
            except IntegrityError as exc:
                raise SlugTakenError("Slug already in use") from exc
            LOGGER.info("Created link slug=%s owner=%s", slug, owner_email)
            return to_response(entry)

    def get_by_slug(self, slug: str) -> LinkResponse:
        entry = select_one_or_none("link", slug=slug)
        if entry is None:
            raise LinkNotFoundError("Link not found")
        return to_response(entry)

    def resolve_for_redirect(self, slug: str) -> str:
        """Count a click on ``slug`` and return where it points."""
        now = datetime.now(timezone.utc)
        with session_scope() as session:
            entry = session.execute(
                select(LinkEntry).where(LinkEntry.slug == slug)
            ).scalar_one_or_none()
            if entry is None:
                raise LinkNotFoundError("Link not found")
            if entry.schedule_start is not None and as_utc(entry.schedule_start) > now:
                raise LinkNotActiveError("Link not active yet")
            if entry.status == "blocked":
                raise LinkBlockedError("This link has been blocked")
            if entry.status == "expired":
                raise LinkGoneError("This link has expired")
            if entry.expires_at is not None and as_utc(entry.expires_at) <= now:
                entry.status = "expired"
                entry.updated_at = now
                session.commit()
                raise LinkGoneError("This link has expired")

            result = session.execute(
                update(LinkEntry)
                .where(
                    LinkEntry.id == entry.id,
                    or_(
                        LinkEntry.max_clicks == 0,
                        LinkEntry.clicks < LinkEntry.max_clicks,
                    ),
                )
                .values(clicks=LinkEntry.clicks + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                entry.status = "expired"
                entry.updated_at = now
                session.commit()
                raise LinkGoneError("This link has been destroyed")
            return entry.destination

    def update_link(self, link_id: int, payload: LinkUpdate) -> LinkResponse:
        with session_scope() as session:
            entry = session.get(LinkEntry, link_id)
            if entry is None:
                raise LinkNotFoundError("Link not found")
            if payload.status in LINK_STATUSES:
                entry.status = payload.status
            if payload.max_clicks is not None:
                entry.max_clicks = payload.max_clicks
            entry.updated_at = datetime.now(timezone.utc)
            session.flush()
            return to_response(entry)

    def delete_link(self, link_id: int) -> None:
        if delete_records("link", id=link_id) == 0:
            raise LinkNotFoundError("Link not found")

    def _generate_unique_slug(self, attempts: int = 5) -> str:
        for _ in range(attempts):
            slug = "".join(
                secrets.choice(SLUG_ALPHABET) for _ in range(GENERATED_SLUG_LENGTH)
            )
            if select_one_or_none("link", slug=slug) is None:
                return slug
        raise SlugTakenError("Could not allocate a unique slug")


link_store = LinkStore(settings.admin_links_max_limit)
