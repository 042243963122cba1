# SPDX-License-Identifier: MIT
"""Download statistics ingestion.

Only the stats uploader running on the same host may post here.
"""

import ipaddress
import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..dependencies import get_engine
from ..errors import ForbiddenError, InvalidRequestError
from ..repository import RegistryEngine

logger = logging.getLogger(__name__)

router = APIRouter()


class DownloadCounts(BaseModel):
    """Per-version and per-day download counts for one package."""

    versions: dict[str, int] = Field(default_factory=dict)
    recent: dict[str, int] = Field(default_factory=dict)


class PackageStats(BaseModel):
    downloads: DownloadCounts = Field(default_factory=DownloadCounts)


StatsDocument = TypeAdapter(dict[str, PackageStats])


def flatten_stats(raw: object) -> object:
    """Accept the recent-downloads document shape as well.

    ``{"startDate", "endDate", "extensions": [{name: {...}}, ...]}`` becomes
    ``{name: {...}, ...}``; anything else is returned unchanged.
    """
    if isinstance(raw, dict) and isinstance(raw.get("extensions"), list):
        flattened = {}
        for item in raw["extensions"]:
            if isinstance(item, dict):
                flattened.update(item)
        return flattened
    return raw


def is_local_client(request: Request) -> bool:
    """True if the request comes from a loopback address."""
    if request.client is None:
        return False
    try:
        return ipaddress.ip_address(request.client.host).is_loopback
    except ValueError:
        return request.client.host == "localhost"


@router.post("/stats", status_code=202)
async def post_stats(
    request: Request,
    engine: Annotated[RegistryEngine, Depends(get_engine)],
    file: Annotated[UploadFile | None, File()] = None,
) -> Response:
    """Apply a download statistics document.

    The body is a multipart upload with a ``file`` field holding
    ``{name: {"downloads": {"versions": {...}, "recent": {...}}}}``.
    """
    host = request.client.host if request.client else None
    logger.debug("Stats request from %s", host)
    if not is_local_client(request):
        raise ForbiddenError("Download statistics are only accepted from localhost")

    if file is None:
        raise InvalidRequestError("No file was specified for upload.")

    try:
        raw = json.loads(await file.read())
        document = StatsDocument.validate_python(flatten_stats(raw))
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
        raise InvalidRequestError(f"Invalid download statistics: {exc}") from exc

    changed = engine.add_download_stats(
        {name: stats.model_dump() for name, stats in document.items()}
    )
    logger.info("Download statistics applied to %d package(s)", changed)
    return Response(status_code=202)
