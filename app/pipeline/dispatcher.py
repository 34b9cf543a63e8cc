# =============================================================================
# app/pipeline/dispatcher.py - Route Dispatcher
# =============================================================================
# Last stage of the pipeline. Walks a fixed, ordered route table:
#
#   1. API route groups, by prefix        -> Delegate to the API application
#   2. HTML pages, by exact GET/HEAD path -> the page document
#   3. Fallback                           -> 404 under /api/, root document otherwise
#
# The table is built once at startup and never changes.
# =============================================================================

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

from starlette.responses import FileResponse

from app.exceptions import NotFoundError
from app.pipeline.context import API_PREFIX, InboundRequest, RequestContext
from app.pipeline.results import Delegate, Respond, StageResult
from app.pipeline.static import CACHE_CONTROL, INDEX_DOCUMENT
from app.routers import RouteGroup

PAGE_DOCUMENTS: dict[str, str] = {
    "/": INDEX_DOCUMENT,
    "/admin": "admin.html",
    "/login": "login.html",
    "/register": "register.html",
    "/profile": "profile.html",
    "/cart": "cart.html",
    "/orders": "orders.html",
}

PAGE_METHODS = ("GET", "HEAD")


@dataclass(frozen=True)
class ApiRoute:
    group: RouteGroup

    def matches(self, request: InboundRequest) -> bool:
        return self.group.matches(request.path)


@dataclass(frozen=True)
class PageRoute:
    path: str
    document: str

    def matches(self, request: InboundRequest) -> bool:
        if request.method not in PAGE_METHODS:
            return False
        # One trailing slash is tolerated: /admin/ serves /admin
        path = request.path
        if len(path) > 1 and path.endswith("/"):
            path = path[:-1]
        return path == self.path


Route = Union[ApiRoute, PageRoute]


def build_route_table(
    groups: Iterable[RouteGroup],
    pages: dict[str, str] = PAGE_DOCUMENTS,
) -> tuple[Route, ...]:
    """API groups first, then pages, in declaration order."""
    api_routes = [ApiRoute(group) for group in groups]
    page_routes = [PageRoute(path, document) for path, document in pages.items()]
    return tuple(api_routes + page_routes)


class RouteDispatcher:
    """
    Pipeline stage that picks exactly one target for the request.

    Args:
        routes: The ordered route table
        public_dir: Directory holding the page documents
    """

    def __init__(self, routes: tuple[Route, ...], public_dir: Path):
        self.routes = routes
        self.public_dir = Path(public_dir)

    def document(self, name: str) -> FileResponse:
        return FileResponse(self.public_dir / name, headers={"Cache-Control": CACHE_CONTROL})

    async def __call__(self, ctx: RequestContext) -> StageResult:
        request = ctx.request

        for route in self.routes:
            if not route.matches(request):
                continue
            if isinstance(route, ApiRoute):
                return Delegate(route.group)
            return Respond(self.document(route.document))

        # Fallback: only paths below /api/ get the API miss, bare /api is a page
        if request.path.startswith(API_PREFIX + "/"):
            raise NotFoundError(request.path)
        if request.method in PAGE_METHODS:
            return Respond(self.document(INDEX_DOCUMENT))
        raise NotFoundError(request.path, message="Not found")
