# SPDX-License-Identifier: MIT
"""API middleware components."""

from .errors import ERROR_STATUS_CODES, add_error_handlers, status_code_for

__all__ = ["ERROR_STATUS_CODES", "add_error_handlers", "status_code_for"]
