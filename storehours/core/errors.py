"""
Shared error types and error-handling helpers.
"""

from __future__ import annotations

import logging


class StoreHoursError(Exception):
    """Base class for domain errors raised by the service layer."""

    def to_dict(self) -> dict:
        return {"error": str(self)}


class ValidationError(StoreHoursError):
    """Missing or malformed input. Raised before any storage access."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.field:
            payload["field"] = self.field
        return payload


class NotFoundError(StoreHoursError):
    """A referenced row does not exist."""

    def __init__(self, entity: str, entity_id: str | None = None) -> None:
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["entity"] = self.entity
        if self.entity_id is not None:
            payload["entity_id"] = self.entity_id
        return payload


class ForbiddenError(StoreHoursError):
    """The caller may not perform the operation on this entity."""


def _format_extra(extra: dict | None) -> str:
    if not extra:
        return ""
    parts: list[str] = []
    for key, value in extra.items():
        if value is None:
            continue
        parts.append(f"{key}={value}")
    return f" {' '.join(parts)}" if parts else ""


def log_exception(logger: logging.Logger, msg: str, *, extra: dict | None = None, exc: Exception | None = None) -> None:
    """
    Log an exception with context. Uses logger.exception for stack traces.
    """
    suffix = _format_extra(extra)
    if exc is not None:
        logger.error(f"{msg}{suffix}: {exc}", exc_info=exc)
        return
    logger.exception(f"{msg}{suffix}")

