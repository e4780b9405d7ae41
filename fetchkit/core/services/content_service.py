"""Content consumer service.

Page assemblers rarely depend on a single resource: a localized or
page-specific file is tried first and a generic one is used as a fallback.
ContentService expresses that as an ordered list of names resolved through
the ContentLoader.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from fetchkit.domain.models.json_types import RawJson
from fetchkit.infrastructure.content.content_loader import ContentLoader

logger = logging.getLogger(__name__)


class ContentService:
    """Resolves named content with ordered fallbacks."""

    def __init__(self, loader: ContentLoader, preload_names: Sequence[str] = ()):
        """Initializes the ContentService.

        Args:
            loader: The coalescing content loader to read through.
            preload_names: Commonly needed resources warmed up by warm_up().
        """
        self.loader = loader
        self.preload_names = list(preload_names)

    async def get_first(self, names: Iterable[str], shape: Any = RawJson) -> Optional[Any]:
        """Returns the first name in order that loads and decodes, or None."""
        resolved = await self.resolve(names, shape)
        return resolved[1] if resolved else None

    async def resolve(self, names: Iterable[str], shape: Any = RawJson) -> Optional[Tuple[str, Any]]:
        """Like get_first, but also reports which name satisfied the request."""
        tried: List[str] = []
        for name in names:
            tried.append(name)
            value = await self.loader.get(name, shape)
            if value is not None:
                if len(tried) > 1:
                    logger.info(f"Content '{tried[0]}' unavailable; using fallback '{name}'")
                return name, value
        logger.warning(f"No content available for any of: {', '.join(tried) or '(none)'}")
        return None

    def warm_up(self) -> Optional[asyncio.Task]:
        """Schedules a background preload of the configured common resources."""
        if not self.preload_names:
            return None
        logger.debug(f"Warming up content: {self.preload_names}")
        return self.loader.schedule_preload(self.preload_names)

    async def load_many(self, names: Iterable[str], shape: Any = RawJson) -> Dict[str, Optional[Any]]:
        """Loads several independent resources concurrently."""
        unique = list(dict.fromkeys(names))
        values = await asyncio.gather(*(self.loader.get(name, shape) for name in unique))
        return dict(zip(unique, values))
