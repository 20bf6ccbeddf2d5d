"""
Request context using contextvars.

Holds per-request correlation data for structured logging only.
Authorization never reads from here; services receive an explicit
Principal instead.
"""

import contextvars
from typing import Any

_FIELDS = ("request_id", "trace_id", "client_ip", "user_id", "role")

_context_vars: dict[str, contextvars.ContextVar[str | None]] = {
    name: contextvars.ContextVar(name, default=None) for name in _FIELDS
}


def set_request_context(**values: str | None) -> None:
    """
    Set the given context fields; empty values are ignored.

    Usage:
        set_request_context(request_id=request_id, client_ip="203.0.113.7")
    """
    for name, value in values.items():
        if name not in _context_vars:
            raise KeyError(f"Unknown request context field: {name}")
        if value:
            _context_vars[name].set(value)


def get_request_context() -> dict[str, Any]:
    """Fields set for the current request, unset ones omitted."""
    context = {}
    for name, var in _context_vars.items():
        value = var.get()
        if value is not None:
            context[name] = value
    return context


def clear_request_context() -> None:
    for var in _context_vars.values():
        var.set(None)
