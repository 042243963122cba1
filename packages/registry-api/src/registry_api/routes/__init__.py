# SPDX-License-Identifier: MIT
"""API route modules."""

from . import packages, registry, stats

__all__ = ["packages", "registry", "stats"]
