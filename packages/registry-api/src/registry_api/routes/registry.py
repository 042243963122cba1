# SPDX-License-Identifier: MIT
"""Read-only registry endpoints."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..auth import AuthenticatedUser, get_optional_user
from ..dependencies import get_engine
from ..errors import RegistryNotLoadedError
from ..listing import order_registry
from ..repository import RegistryEngine

router = APIRouter()


def _loaded_registry(engine: RegistryEngine) -> dict:
    registry = engine.get_registry()
    if registry is None:
        raise RegistryNotLoadedError()
    return registry


@router.get("/registry")
async def get_registry(
    engine: Annotated[RegistryEngine, Depends(get_engine)],
) -> JSONResponse:
    """Return the whole registry document."""
    return JSONResponse(content=_loaded_registry(engine))


@router.get("/registryList")
async def get_registry_list(
    engine: Annotated[RegistryEngine, Depends(get_engine)],
    user: Annotated[AuthenticatedUser | None, Depends(get_optional_user)],
    sort: Annotated[Literal["published", "downloads", "trending"], Query()] = "published",
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> JSONResponse:
    """List registry entries for display.

    Entries the caller may administer carry ``"canAdmin": true``.
    """
    entries = order_registry(_loaded_registry(engine), sort=sort, limit=limit)

    if user is not None:
        is_admin = engine.is_admin(user.user_id)
        entries = [
            {**entry, "canAdmin": True}
            if is_admin or entry.get("owner") == user.user_id
            else entry
            for entry in entries
        ]

    return JSONResponse(content=entries)
