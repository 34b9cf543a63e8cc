# =============================================================================
# app/pipeline/results.py - Stage Results
# =============================================================================
# Every pipeline stage returns one of these values. Errors are not results;
# stages raise them and the ErrorNormalizer turns them into responses.
# =============================================================================

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from starlette.responses import Response

if TYPE_CHECKING:
    from app.routers import RouteGroup


@dataclass(frozen=True)
class Continue:
    """Hand the request to the next stage."""


@dataclass(frozen=True)
class Respond:
    """Stop here and send this response."""
    response: Response


@dataclass(frozen=True)
class Delegate:
    """Stop here and let the API application serve the route group."""
    group: "RouteGroup"


CONTINUE = Continue()

StageResult = Union[Continue, Respond, Delegate]
