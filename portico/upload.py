# =============================================================================
# portico/upload.py - File Uploads
# =============================================================================
# create_upload_route() returns a two-stage handler list for a route module:
#
#   routes = {"/upload": {"post": create_upload_route()}}
#
# Stage 1 (dependency) stores the multipart file on disk:
#   <root>/temp/<upload>/<YYYYMMDD>/<epoch-ms>-<random><ext>
# Stage 2 (endpoint) answers, by default with {"url": ..., "ext": ...}.
# =============================================================================

import inspect
import logging
import secrets
import shutil
import string
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from portico.config import Settings
from portico.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_SUFFIX_LENGTH = 7


# =============================================================================
# Models
# =============================================================================

class UploadRecord(BaseModel):
    """A stored upload, valid for the current request only."""
    path: Path
    filename: str
    ext: str
    size: int
    content_type: str | None = None

    class Config:
        frozen = True


# =============================================================================
# Helpers
# =============================================================================

def _temp_path(settings: Settings, *dirs: str) -> Path:
    """``<root>/temp/<dirs...>`` without creating it; absolute segments stay under temp."""
    directory = settings.temp_dir.joinpath(*(str(d).lstrip("/\\") for d in dirs))
    temp = settings.temp_dir.resolve()
    resolved = directory.resolve()
    if resolved != temp and temp not in resolved.parents:
        raise ConfigurationError(
            f"Directory escapes {temp}: {directory}",
            suggestion="Use a path inside the temp directory, without '..' segments",
            path=str(directory),
        )
    return directory


def get_temp_dir(settings: Settings, *dirs: str) -> Path:
    """
    Get ``<root>/temp/<dirs...>``, creating it if needed.

    Leading separators are ignored, so "/uploads" means <root>/temp/uploads.

    Example:
        get_temp_dir(settings, "exports", "2024")  # -> <root>/temp/exports/2024

    Raises:
        ConfigurationError: If the result resolves outside <root>/temp
    """
    directory = _temp_path(settings, *dirs)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def check_upload_dir(settings: Settings) -> Path:
    """Validate the `upload` setting at startup; returns <root>/temp/<upload>."""
    return _temp_path(settings, settings.upload)


def generate_filename(original: str | None) -> str:
    """Collision-resistant name keeping the original extension."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"{int(time.time() * 1000)}-{suffix}{Path(original or '').suffix}"


def relative_url(settings: Settings, path: Path) -> str:
    """Path of a stored file relative to the root, as a URL path."""
    return "/" + path.resolve().relative_to(settings.root.resolve()).as_posix()


def _copy(source, destination: Path) -> None:
    with destination.open("wb") as out:
        shutil.copyfileobj(source, out)


async def store_upload(settings: Settings, file: UploadFile) -> UploadRecord:
    """Write an uploaded file into today's upload directory."""
    directory = get_temp_dir(settings, settings.upload, datetime.now().strftime("%Y%m%d"))
    destination = directory / generate_filename(file.filename)

    await file.seek(0)
    await run_in_threadpool(_copy, file.file, destination)

    record = UploadRecord(
        path=destination,
        filename=file.filename or destination.name,
        ext=Path(file.filename or "").suffix,
        size=destination.stat().st_size,
        content_type=file.content_type,
    )
    logger.info(f"Stored upload: {record.filename} -> {destination} ({record.size} bytes)")
    return record


def get_upload(request: Request) -> UploadRecord | None:
    """The file stored for this request, if any."""
    return getattr(request.state, "file", None)


# =============================================================================
# Route Stages
# =============================================================================

UploadHandler = Callable[[Request, UploadRecord | None], Any]


def create_upload_route(handle: UploadHandler | None = None) -> list[Callable[..., Any]]:
    """
    Build the [receive, respond] stages of an upload route.

    Args:
        handle: Optional ``handle(request, record)`` (sync or async) run
            before responding. Returning a Response answers the request;
            returning None falls through to the default answer.

    Returns:
        Two callables: a dependency that stores the file and the endpoint

    Responses:
        200 {"url": "/temp/...", "ext": ".png"}  when a file was stored
        400 {"code": 400, "msg": "No file uploaded"}  otherwise
    """

    async def receive_upload(request: Request) -> None:
        settings: Settings = request.state.config
        request.state.file = None

        form = await request.form()
        file = form.get(settings.upload_field_name)
        # Plain text fields come back as str
        if not isinstance(file, UploadFile) or not file.filename:
            logger.debug(f"No file in field '{settings.upload_field_name}'")
            return

        request.state.file = await store_upload(settings, file)

    async def respond_upload(request: Request) -> Response:
        settings: Settings = request.state.config
        record = get_upload(request)

        if handle is not None:
            result = handle(request, record)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, Response):
                return result

        if record is None:
            return JSONResponse(status_code=400, content={"code": 400, "msg": "No file uploaded"})

        return JSONResponse(content={"url": relative_url(settings, record.path), "ext": record.ext})

    return [receive_upload, respond_upload]
