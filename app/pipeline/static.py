# =============================================================================
# app/pipeline/static.py - Static Asset Server
# =============================================================================
# Serves files from the public directory when a GET/HEAD path names one.
# Anything that resolves outside the directory, or through a hidden path
# segment, counts as a miss and falls through to the dispatcher.
# =============================================================================

import logging
from pathlib import Path
from typing import Optional

from starlette.concurrency import run_in_threadpool
from starlette.responses import FileResponse

from app.pipeline.context import RequestContext
from app.pipeline.results import CONTINUE, Respond, StageResult

logger = logging.getLogger(__name__)

INDEX_DOCUMENT = "index.html"
CACHE_CONTROL = "public, max-age=0"


class StaticAssetServer:
    """
    Pipeline stage for files under `root`.

    Args:
        root: The public asset directory
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def resolve(self, path: str) -> Optional[Path]:
        """
        Map a request path to a file inside the root, or None.

        Example: "/css/site.css" -> <root>/css/site.css
                 "/../etc/passwd" -> None
        """
        if "\x00" in path:
            return None

        segments = [segment for segment in path.split("/") if segment]
        if any(segment.startswith(".") and segment not in (".", "..") for segment in segments):
            return None

        candidate = self.root.joinpath(*segments).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            return None

        if candidate.is_dir():
            candidate = candidate / INDEX_DOCUMENT
        if not candidate.is_file():
            return None
        return candidate

    async def __call__(self, ctx: RequestContext) -> StageResult:
        if ctx.request.method not in ("GET", "HEAD"):
            return CONTINUE

        file_path = await run_in_threadpool(self.resolve, ctx.request.path)
        if file_path is None:
            return CONTINUE

        logger.debug(f"Serving static asset {file_path}")
        return Respond(FileResponse(file_path, headers={"Cache-Control": CACHE_CONTROL}))
