"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    actor_id: str | None = None,
    role: str | None = None,
    complaint_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict."""
    context: dict[str, Any] = {}
    if actor_id:
        context["actor_id"] = actor_id
    if role:
        context["role"] = role
    if complaint_id:
        context["complaint_id"] = complaint_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context


def mask_phone(phone: str | None) -> str:
    """Keep the last 4 digits of a contact number for log lines."""
    if not phone:
        return ""
    return f"***{phone[-4:]}"
