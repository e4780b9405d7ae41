"""Static content loading with request coalescing and a short-TTL cache.
Bounded Context: Content Delivery
"""

from fetchkit.infrastructure.content.content_loader import ContentLoader

__all__ = ["ContentLoader"]
