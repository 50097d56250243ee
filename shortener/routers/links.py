from fastapi import APIRouter, Depends, HTTPException, status

from shortener.routers.deps import get_optional_user
from shortener.schemas.links import LinkCreate, LinkResponse
from shortener.services.links import LinkNotFoundError, SlugTakenError, link_store
from shortener.services.tokens import AccessTokenData

router = APIRouter(prefix="/links", tags=["links"])


@router.post("", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
def create_link(
    payload: LinkCreate,
    current: AccessTokenData | None = Depends(get_optional_user),
) -> LinkResponse:
    owner_email = current.email if current else None
    try:
        return link_store.create_link(payload, owner_email=owner_email)
    except SlugTakenError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.get("/{slug}", response_model=LinkResponse)
def get_link(slug: str) -> LinkResponse:
    try:
        return link_store.get_by_slug(slug)
    except LinkNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
