import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from starlette.concurrency import run_in_threadpool

from shortener.routers.deps import get_connection_manager, require_admin
from shortener.schemas.links import AdminLinksPage, LinkResponse, LinkUpdate
from shortener.services.links import LinkNotFoundError, link_store
from shortener.services.realtime import ConnectionManager

LOGGER = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/links",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


# page/limit stay strings so malformed values fall back to defaults instead of 422.
@router.get("", response_model=AdminLinksPage)
async def list_links(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status"),
) -> AdminLinksPage:
    try:
        return await link_store.list_links(
            page=page, limit=limit, search=search, status=status_filter
        )
    except Exception as exc:
        LOGGER.exception("Error listing admin links")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch links",
        ) from exc


@router.patch("/{link_id}", response_model=LinkResponse)
async def update_link(
    link_id: int,
    payload: LinkUpdate,
    connections: ConnectionManager = Depends(get_connection_manager),
) -> LinkResponse:
    try:
        link = await run_in_threadpool(link_store.update_link, link_id, payload)
    except LinkNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    await connections.broadcast(
        {"event": "link:updated", "link": link.model_dump(mode="json", by_alias=True)}
    )
    return link


@router.delete("/{link_id}")
async def delete_link(
    link_id: int,
    connections: ConnectionManager = Depends(get_connection_manager),
) -> dict:
    try:
        await run_in_threadpool(link_store.delete_link, link_id)
    except LinkNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    await connections.broadcast({"event": "link:deleted", "id": link_id})
    return {"success": True}
