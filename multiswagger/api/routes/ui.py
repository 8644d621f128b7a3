"""
Swagger UI shell and static assets.

Static lookups try the ``assets/`` subdirectory first and then the UI root.
This router holds the catch-all route and must be included last.
"""
import html
import logging
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, HTMLResponse

from multiswagger.api.routes import ANY_METHOD
from multiswagger.core.errors import InternalError, StaticFileNotFoundError

router = APIRouter()
logger = logging.getLogger(__name__)

UI_ROOT = Path(__file__).resolve().parents[2] / "static" / "swagger-ui"
ASSETS_SUBDIR = "assets"
INDEX_HTML = "index.html"
CACHE_CONTROL = "public, max-age=3600"

_CONTENT_TYPES = {
    ".css": "text/css",
    ".js": "application/javascript",
    ".png": "image/png",
    ".html": "text/html",
    ".json": "application/json",
    ".svg": "image/svg+xml",
}


def content_type_for(path: str) -> str:
    return _CONTENT_TYPES.get(Path(path).suffix.lower(), "application/octet-stream")


def inject_base_path(page: str, base_path: str) -> str:
    """Add ``<meta name="base-path">`` before the first ``</head>``."""
    if not base_path:
        return page
    meta = f'<meta name="base-path" content="{html.escape(base_path, quote=True)}">'
    return page.replace("</head>", meta + "</head>", 1)


def find_static_file(root: Path, relative: str):
    """Resolve ``relative`` inside ``root``; None when absent or outside it."""
    root = root.resolve()
    relative = relative.lstrip("/")
    if not relative:
        return None
    for directory in (root / ASSETS_SUBDIR, root):
        candidate = (directory / relative).resolve()
        if root not in candidate.parents:
            continue
        if candidate.is_file():
            return candidate
    return None


@router.api_route("/", methods=ANY_METHOD, include_in_schema=False)
@router.api_route("/index.html", methods=ANY_METHOD, include_in_schema=False)
def index(request: Request):
    ui_root: Path = request.app.state.ui_root
    index_file = ui_root / INDEX_HTML
    try:
        page = index_file.read_text(encoding="utf-8")
    except OSError as e:
        raise InternalError(f"Failed to serve file {index_file}: {e}") from e

    base_path = request.app.state.settings.base_path
    if base_path:
        logger.debug("Added base-path meta tag: %s", base_path)
    return HTMLResponse(inject_base_path(page, base_path))


@router.api_route("/{path:path}", methods=ANY_METHOD, include_in_schema=False)
def static_file(path: str, request: Request):
    found = find_static_file(request.app.state.ui_root, path)
    if found is None:
        raise StaticFileNotFoundError(f"Static file not found: /{path}")

    media_type = content_type_for(found.name)
    logger.debug("Serving file: /%s, Content-Type: %s", path, media_type)
    return FileResponse(found, media_type=media_type, headers={"Cache-Control": CACHE_CONTROL})
