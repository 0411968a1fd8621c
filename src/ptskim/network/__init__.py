"""Network-side collaborators: stop lookup and transport-mode classification."""

from .route_modes import RouteModeCatalog
from .stop_locator import StopLocator

__all__ = ["RouteModeCatalog", "StopLocator"]
