"""Request classification by URL shape.

:func:`classify` decides which caching strategy serves a request. The checks
run in a fixed order and the first match wins:

1. ``DATA_QUERY`` -- the path starts with a configured API prefix.
2. ``MEDIA_ASSET`` -- the origin is a configured media origin, or the path
   ends in a configured image extension.
3. ``GENERIC`` -- everything else.
"""

from __future__ import annotations

from cachegate.models import Category, Request, RoutingConfig


def classify(request: Request, routing: RoutingConfig) -> Category:
    """Return the :class:`~cachegate.models.Category` of *request*.

    Pure function: never performs I/O and never raises.

    Args:
        request: The intercepted request.
        routing: Prefixes, origins and extensions to match against.
    """
    path = request.path

    if any(path.startswith(prefix) for prefix in routing.api_prefixes):
        return Category.DATA_QUERY

    if request.origin in routing.media_origins or _has_image_extension(path, routing):
        return Category.MEDIA_ASSET

    return Category.GENERIC


def _has_image_extension(path: str, routing: RoutingConfig) -> bool:
    # Matches the literal end of the path, so "/a.jpg/" is not an image and "/.jpg" is.
    return path.lower().endswith(tuple(f".{ext}" for ext in routing.image_extensions))
