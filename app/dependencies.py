# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for route group handlers.
# These are injected into route handlers using Depends().
#
# Usage:
#   @router.post("/")
#   async def create_order(body: DecodedBody, settings: SettingsDep):
#       ...
# =============================================================================

from typing import Annotated, Any

from fastapi import Depends, Request

from app.config import Settings


def get_decoded_body(request: Request) -> Any:
    """
    Get the body decoded by the pipeline.

    Returns None when the request carried no JSON or URL-encoded body.
    """
    return getattr(request.state, "body", None)


def get_app_settings(request: Request) -> Settings:
    """
    Get the settings the running application was built with.
    """
    return request.app.state.settings


# Type aliases for dependency injection
DecodedBody = Annotated[Any, Depends(get_decoded_body)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
