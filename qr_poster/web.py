"""HTTP surface of the poster editor."""

import logging
import os
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, FastAPI, HTTPException, Request
from fastapi.responses import Response
from fastapi.templating import Jinja2Templates

from qr_poster import QR_SIZE_MAX, QR_SIZE_MIN, __version__
from qr_poster.api_client import BaseArtClient, get_client
from qr_poster.config import ConfigError, Position, Theme
from qr_poster.export import mime_type, poster_bytes
from qr_poster.image_utils import load_remote_image
from qr_poster.state import PosterSession, Tab

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")
templates = Jinja2Templates(directory=TEMPLATES_DIR)

router = APIRouter()

_NO_CACHE = {"Cache-Control": "no-store"}


def _session(request: Request) -> PosterSession:
    return request.app.state.session


@router.get("/")
def read_editor(request: Request):
    return templates.TemplateResponse(
        request,
        "editor.html",
        {
            "state": _session(request).snapshot(),
            "positions": [p.value for p in Position],
            "themes": [t.value for t in Theme],
            "tabs": [t.value for t in Tab],
            "size_range": (QR_SIZE_MIN, QR_SIZE_MAX),
            "version": __version__,
        },
    )


@router.get("/api/config")
def read_config(request: Request) -> dict[str, Any]:
    return _session(request).snapshot()


@router.patch("/api/config")
def update_config(request: Request, changes: dict[str, Any] = Body(...)) -> dict[str, Any]:
    session = _session(request)
    try:
        session.update(**changes)
    except ConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return session.snapshot()


@router.post("/api/config/reset")
def reset_config(request: Request) -> dict[str, Any]:
    session = _session(request)
    session.reset()
    return session.snapshot()


@router.put("/api/tab")
def select_tab(request: Request, tab: str = Body(..., embed=True)) -> dict[str, Any]:
    session = _session(request)
    try:
        session.select_tab(tab)
    except ValueError:
        choices = ", ".join(t.value for t in Tab)
        raise HTTPException(status_code=422, detail=f"'tab' must be one of: {choices}")
    return session.snapshot()


@router.post("/api/generate", status_code=202)
def generate_background(request: Request, background_tasks: BackgroundTasks) -> dict[str, Any]:
    session = _session(request)
    client: BaseArtClient | None = request.app.state.art_client
    if client is None:
        raise HTTPException(status_code=503, detail="No background generator is configured.")
    if not session.begin_generation():
        raise HTTPException(status_code=409, detail="A background is already being generated.")

    logger.info("Generating background via %s", client.name())
    background_tasks.add_task(session.run_generation, client)
    return session.snapshot()


@router.get("/api/status")
def read_status(request: Request) -> dict[str, Any]:
    snapshot = _session(request).snapshot()
    return {"generating": snapshot["generating"], "notifications": snapshot["notifications"]}


@router.delete("/api/notifications", status_code=204)
def clear_notifications(request: Request) -> Response:
    _session(request).clear_notifications()
    return Response(status_code=204)


@router.get("/preview.png")
def read_preview(request: Request) -> Response:
    content = poster_bytes(
        _session(request).config,
        "png",
        scale=1.0,
        background_loader=request.app.state.background_loader,
    )
    return Response(content=content, media_type="image/png", headers=_NO_CACHE)


@router.get("/download")
def download_poster(request: Request, format: str = "png") -> Response:
    try:
        content = poster_bytes(
            _session(request).config,
            format,
            background_loader=request.app.state.background_loader,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    ext = "jpg" if format.lower() in ("jpg", "jpeg") else format.lower()
    return Response(
        content=content,
        media_type=mime_type(format),
        headers={"Content-Disposition": f'attachment; filename="qr-poster.{ext}"', **_NO_CACHE},
    )


def create_app(
    session: PosterSession | None = None,
    art_client: BaseArtClient | None = None,
    api: str | None = None,
    background_loader=load_remote_image,
) -> FastAPI:
    """Build the editor application.

    Args:
        session: Editing session to serve; a fresh one by default.
        art_client: Background generator. When omitted and ``api`` is given,
            one is created from the environment at startup; if that fails
            the editor still runs with generation disabled.
        api: Backend name for ``get_client``.
        background_loader: Turns background references into images. The
            default accepts only http(s) URLs and ``data:`` URIs.
    """
    if art_client is None and api:
        try:
            art_client = get_client(api)
        except (ConnectionError, ValueError, ImportError) as e:
            logger.warning("Background generation disabled: %s", e)

    app = FastAPI(title="QR Art Poster", version=__version__)
    app.state.session = session or PosterSession()
    app.state.art_client = art_client
    app.state.background_loader = background_loader
    app.include_router(router)
    return app


def app_from_env() -> FastAPI:
    """Application factory for uvicorn's reloader; reads ``QR_POSTER_API``."""
    return create_app(api=os.environ.get("QR_POSTER_API", "gemini"))


def run(
    host: str = "127.0.0.1",
    port: int = 8000,
    api: str | None = None,
    reload: bool = False,
) -> None:
    """Serve the editor with uvicorn.

    With ``reload`` the app is given to uvicorn as an import string, so each
    restarted worker builds it again through ``app_from_env``.
    """
    import uvicorn

    if reload:
        if api:
            os.environ["QR_POSTER_API"] = api
        uvicorn.run("qr_poster.web:app_from_env", factory=True, host=host, port=port, reload=True)
        return
    uvicorn.run(create_app(api=api), host=host, port=port)
