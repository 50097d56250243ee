from fastapi import APIRouter, HTTPException, status
from fastapi.responses import RedirectResponse

from shortener.services.links import (
    LinkBlockedError,
    LinkGoneError,
    LinkNotFoundError,
    link_store,
)

router = APIRouter(tags=["redirect"])


@router.get("/{slug}", include_in_schema=False)
def follow_link(slug: str) -> RedirectResponse:
    try:
        destination = link_store.resolve_for_redirect(slug)
    except LinkNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except LinkBlockedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except LinkGoneError as exc:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail=str(exc)) from exc
    return RedirectResponse(url=destination, status_code=status.HTTP_302_FOUND)
