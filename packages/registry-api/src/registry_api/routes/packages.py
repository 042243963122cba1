# SPDX-License-Identifier: MIT
"""Package upload and administration endpoints."""

import asyncio
import logging
import os
import shutil
import tempfile
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from ..auth import AuthenticatedUser, get_current_user
from ..dependencies import get_engine
from ..errors import InvalidRequestError
from ..repository import RegistryEngine

logger = logging.getLogger(__name__)

router = APIRouter()


class ChangeOwnerRequest(BaseModel):
    """Request body for transferring a package."""

    newOwner: str = ""


class ChangeRequirementsRequest(BaseModel):
    """Request body for replacing a package's compatibility range."""

    requirements: str = ""


class StatusResponse(BaseModel):
    """Response for a successful administrative change."""

    status: str = "ok"


def _spool_upload(upload: UploadFile) -> str:
    """Copy an upload to a named temporary file and return its path."""
    fd, path = tempfile.mkstemp(prefix="upload-", suffix=".zip")
    with os.fdopen(fd, "wb") as out:
        upload.file.seek(0)
        shutil.copyfileobj(upload.file, out)
    return path


@router.post("/upload")
async def upload_package(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    engine: Annotated[RegistryEngine, Depends(get_engine)],
    file: Annotated[UploadFile | None, File()] = None,
) -> dict:
    """Upload a new package or a new version of an existing one.

    Returns the registry entry after the version was added.
    """
    if file is None or not file.filename:
        raise InvalidRequestError("No file was specified for upload.")
    if not file.filename.lower().endswith(".zip"):
        raise InvalidRequestError("Extension packages must be zip files.")

    path = await asyncio.to_thread(_spool_upload, file)
    try:
        return await engine.add_package(path, user.user_id)
    finally:
        try:
            os.unlink(path)
        except OSError as exc:
            logger.warning("Unable to remove upload %s: %s", path, exc)


@router.delete("/package/{name}")
async def delete_package(
    name: str,
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    engine: Annotated[RegistryEngine, Depends(get_engine)],
) -> StatusResponse:
    """Remove a package from the registry."""
    engine.delete_package_metadata(name, user.user_id)
    return StatusResponse()


@router.post("/package/{name}/changeOwner")
async def change_owner(
    name: str,
    body: ChangeOwnerRequest,
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    engine: Annotated[RegistryEngine, Depends(get_engine)],
) -> StatusResponse:
    """Transfer a package to another user."""
    new_owner = body.newOwner.strip()
    if not new_owner:
        raise InvalidRequestError("No new package owner provided.")
    engine.change_package_owner(name, user.user_id, new_owner)
    return StatusResponse()


@router.post("/package/{name}/changeRequirements")
async def change_requirements(
    name: str,
    body: ChangeRequirementsRequest,
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    engine: Annotated[RegistryEngine, Depends(get_engine)],
) -> StatusResponse:
    """Replace the compatibility range on every version of a package."""
    requirements = body.requirements.strip()
    if not requirements:
        raise InvalidRequestError("No new requirements provided.")
    engine.change_package_requirements(name, user.user_id, requirements)
    return StatusResponse()
