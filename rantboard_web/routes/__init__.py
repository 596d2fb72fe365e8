"""
HTTP routes for Rantboard.

Each area is in its own module for maintainability.
"""

from .pages import register_page_routes
from .posts import register_post_routes
from .settings import register_settings_routes
from .auth import register_auth_routes


def register_all_routes(app):
    """Register all Rantboard routes with the FastAPI app."""
    register_page_routes(app)
    register_post_routes(app)
    register_settings_routes(app)
    register_auth_routes(app)
