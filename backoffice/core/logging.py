"""Logging setup and structured log helpers (no personal data)."""

import logging
from typing import Any

from backoffice.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the API process or the CLI."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def build_log_context(
    *,
    employee_id: Any = None,
    project_id: Any = None,
    entity: str | None = None,
    entity_id: Any = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict holding only identifiers."""
    context: dict[str, Any] = {}
    if employee_id:
        context["employee_id"] = str(employee_id)
    if project_id:
        context["project_id"] = str(project_id)
    if entity:
        context["entity"] = entity
    if entity_id:
        context["entity_id"] = str(entity_id)
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
