import json
import logging
from typing import Optional

from shortener.config import settings

LOGGER = logging.getLogger(__name__)


def resolve_client_redirect(
    slug: str, raw_cache: Optional[str], fallback: Optional[str] = None
) -> str:
    """Resolve ``slug`` against a locally cached slug map with no backend.

    ``raw_cache`` is the JSON text the dashboard keeps in browser storage
    under ``deadman_preview_map``. Anything other than a JSON object
    holding a non-empty string for ``slug`` resolves to the fallback target.
    """
    fallback = fallback or settings.client_fallback_url
    try:
        mapping = json.loads(raw_cache or "{}")
    except (TypeError, ValueError):
        LOGGER.warning("Client redirect cache is not valid JSON, using fallback")
        return fallback
    if not isinstance(mapping, dict):
        return fallback
    target = mapping.get(slug)
    if isinstance(target, str) and target:
        return target
    return fallback
