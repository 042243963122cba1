# SPDX-License-Identifier: MIT
"""Shared FastAPI dependencies."""

from fastapi import Request

from .repository import RegistryEngine


def get_engine(request: Request) -> RegistryEngine:
    """FastAPI dependency returning the application's registry engine."""
    return request.app.state.engine
