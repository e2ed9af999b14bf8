"""HTTP routes: the JSON API and the server-rendered admin page."""

from .api_routes import configure_api_router, operation_failed
from .page_routes import configure_page_router

__all__ = ["configure_api_router", "configure_page_router", "operation_failed"]
