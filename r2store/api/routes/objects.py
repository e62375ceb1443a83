"""
Object routes: list, upload, delete and fetch files in the bucket.

Dispatch, first match wins:
1. /favicon.svg          static asset, never gated
2. GET /?filename=<key>  direct fetch
3. GET|HEAD /            token prompt when a token is configured but not supplied
4. GET|HEAD /            listing page
5. POST /                delete (action=delete) or upload, then redirect home
6. /<key>, any method    direct fetch

Every route except the favicon passes the access guard before touching
storage. The token comes from the query string on reads and from the
form body on POSTs, so each handler extracts it itself.
"""

import logging
import mimetypes
from datetime import timezone
from email.utils import format_datetime
from typing import Annotated, Optional, Union
from urllib.parse import quote

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response, StreamingResponse
from starlette.datastructures import UploadFile as StarletteUploadFile

from ...core.access import AccessGuard
from ...infrastructure.storage.client import DEFAULT_CONTENT_TYPE, StorageClient, StoredObject
from ..dependencies import AccessGuardDep, SettingsDep, StorageClientDep, require_access
from ..pages import FAVICON_MEDIA_TYPE, FAVICON_SVG, render_index, render_token_prompt

logger = logging.getLogger(__name__)

router = APIRouter()

# methods answered by the catch-all fetch route
FETCH_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def home_redirect(guard: AccessGuard) -> RedirectResponse:
    """
    Redirect back to the listing page after a mutation.

    The configured token rides along in the query string so the browser
    lands on the list rather than the token prompt.
    """
    url = "/"
    if guard.required:
        url += f"?token={quote(guard.expected_token, safe='')}"
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


def object_headers(obj: StoredObject) -> dict[str, str]:
    """Response headers copied from the backend's object metadata."""
    headers = {"content-type": obj.content_type}

    if obj.size is not None:
        headers["content-length"] = str(obj.size)
    if obj.etag:
        headers["etag"] = obj.etag
    if obj.last_modified is not None:
        headers["last-modified"] = format_datetime(
            obj.last_modified.astimezone(timezone.utc), usegmt=True
        )

    optional = {
        "cache-control": obj.cache_control,
        "content-disposition": obj.content_disposition,
        "content-encoding": obj.content_encoding,
        "content-language": obj.content_language,
    }
    headers.update({name: value for name, value in optional.items() if value})

    return headers


async def stream_object(storage: StorageClient, key: str) -> Response:
    """Fetch an object and stream it back, or 404 if the key is unknown."""
    obj = await storage.get_object(key)
    if obj is None:
        logger.info("Object not found", extra={"key": key})
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )

    logger.debug(
        "Serving object",
        extra={"key": key, "size_bytes": obj.size, "content_type": obj.content_type}
    )

    return StreamingResponse(obj.body, headers=object_headers(obj))


def upload_content_type(file: UploadFile) -> str:
    """Content type declared by the upload, else guessed from its name."""
    if file.content_type:
        return file.content_type
    guessed, _ = mimetypes.guess_type(file.filename or "")
    return guessed or DEFAULT_CONTENT_TYPE


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/favicon.svg", include_in_schema=False)
async def favicon() -> Response:
    """Static icon, served without a token."""
    return Response(content=FAVICON_SVG, media_type=FAVICON_MEDIA_TYPE)


@router.api_route("/", methods=["GET", "HEAD"], response_class=HTMLResponse)
async def index(
    guard: AccessGuardDep,
    settings: SettingsDep,
    storage: StorageClientDep,
    token: Optional[str] = None,
    filename: Optional[str] = None,
) -> Response:
    """
    Home page.

    `?filename=<key>` turns this into a direct download. Without it the
    caller gets the token prompt (token configured but not supplied) or
    the listing with upload and delete forms.
    """
    if filename:
        require_access(guard, token)
        return await stream_object(storage, filename)

    if guard.required and not token:
        return HTMLResponse(render_token_prompt())

    require_access(guard, token)

    objects = await storage.list_objects()

    logger.debug("Rendering listing", extra={"count": len(objects)})

    return HTMLResponse(
        render_index(
            (obj.key for obj in objects),
            token=guard.expected_token,
            title=settings.app_title,
        )
    )


@router.post("/")
async def mutate(
    guard: AccessGuardDep,
    storage: StorageClientDep,
    action: Annotated[Optional[str], Form()] = None,
    key: Annotated[Optional[str], Form()] = None,
    # a plain text field named "file" arrives as str
    file: Annotated[Union[UploadFile, str, None], File()] = None,
    token: Annotated[Optional[str], Form()] = None,
) -> RedirectResponse:
    """
    Form target for uploads and deletes.

    `action=delete` removes `key`; anything else uploads `file` under its
    own filename, overwriting an existing object with that name.
    """
    require_access(guard, token)

    if action == "delete":
        if not key:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No file specified",
            )

        await storage.delete_object(key)

        logger.info("File deleted", extra={"key": key})
        return home_redirect(guard)

    if not isinstance(file, StarletteUploadFile) or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded",
        )

    content_type = upload_content_type(file)
    await storage.put_object(file.filename, file.file, content_type=content_type)

    logger.info(
        "File uploaded",
        extra={"key": file.filename, "content_type": content_type, "size_bytes": file.size}
    )
    return home_redirect(guard)


@router.api_route("/{key:path}", methods=FETCH_METHODS)
async def fetch_object(
    key: str,
    guard: AccessGuardDep,
    storage: StorageClientDep,
    token: Optional[str] = None,
) -> Response:
    """
    Direct download by path.

    The ASGI server has already percent-decoded the path, so names with
    spaces or non-ASCII characters arrive as stored.
    """
    require_access(guard, token)

    # other methods on "/" land here with an empty key
    if not key:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )

    return await stream_object(storage, key)
