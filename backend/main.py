"""
Docs Preview Server
Serves the pre-built documentation site locally and redirects / to the docs index.
"""

import sys

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import FileResponse, PlainTextResponse, RedirectResponse, Response
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import Settings
from core.errors import InternalReadError, NotFound, PathTraversalRejected
from core.static_files import DocumentRoot

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level}</level> | <cyan>{function}</cyan> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}"


def configure_logging(settings: Settings):
    """Console logging on stderr, plus a rotating file log when LOG_DIR is set."""
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=settings.LOG_LEVEL.upper(), format=CONSOLE_FORMAT)

    if settings.LOG_DIR:
        settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(settings.LOG_DIR / "docs-preview.log"),
            rotation="10 MB",
            retention="7 days",
            level=settings.LOG_LEVEL.upper(),
            format=FILE_FORMAT,
        )


class SiteFileResponse(FileResponse):
    """FileResponse that answers 404 when the file is gone by the time it is sent."""

    async def __call__(self, scope, receive, send):
        started = False

        async def tracking_send(message):
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await super().__call__(scope, receive, tracking_send)
        except (RuntimeError, FileNotFoundError):
            # Headers already on the wire, nothing left to correct
            if started:
                raise
            logger.warning(f"{self.path} was removed before it could be served")
            await PlainTextResponse("Not Found", status_code=404)(scope, receive, send)


def _serve(root: DocumentRoot, relative: str, request: Request) -> Response:
    found = root.lookup(relative)

    # Relative links in an index page only work below a trailing slash
    if found.is_directory and not request.url.path.endswith("/"):
        location = request.url.path + "/"
        if request.url.query:
            location += "?" + request.url.query
        return RedirectResponse(location, status_code=307)

    return SiteFileResponse(found.path)


def create_app(settings: Settings) -> FastAPI:
    """Build the preview app for the given settings."""
    # /docs belongs to the served site, not to the API explorer
    app = FastAPI(
        title="Docs Preview Server",
        description="Local preview of the pre-built documentation site",
        version="1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings

    if settings.GZIP:
        app.add_middleware(GZipMiddleware, minimum_size=1000)

    site = DocumentRoot(mount="/", directory=settings.site_root)
    assets = DocumentRoot(mount=settings.ASSETS_MOUNT, directory=settings.assets_root)

    for root in (site, assets):
        if not root.exists():
            logger.warning(f"Document root {root.directory} does not exist yet, has the docs build run?")

    @app.exception_handler(StarletteHTTPException)
    async def plain_text_error(request: Request, exc: StarletteHTTPException):
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    @app.api_route("/", methods=["GET", "HEAD"])
    async def redirect_to_docs():
        """Send the bare root to the documentation index."""
        return RedirectResponse(settings.INDEX_PATH, status_code=302)

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    async def serve_file(request: Request, path: str):
        """Serve a file from the assets mount or the site root."""
        request_path = "/" + path

        try:
            if assets.matches(request_path):
                try:
                    return _serve(assets, assets.relative(request_path), request)
                except NotFound:
                    logger.debug(f"{request_path} not under {assets.directory}, trying site root")

            return _serve(site, request_path, request)

        except NotFound as e:
            raise HTTPException(status_code=404, detail="Not Found") from e
        except PathTraversalRejected as e:
            logger.warning(f"Rejected path outside document root: {request_path!r}")
            raise HTTPException(status_code=403, detail="Forbidden") from e
        except InternalReadError as e:
            logger.error(f"Failed to read {request_path}: {e}")
            raise HTTPException(status_code=500, detail="Internal Server Error") from e

    return app


if __name__ == "__main__":
    from run import main

    sys.exit(main())
