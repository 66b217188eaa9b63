"""
Error types raised by the analytics engine.
"""

from typing import Optional


class AnalyticsError(Exception):
    """Base class for all engine errors."""


class ValidationError(AnalyticsError, ValueError):
    """An input snapshot carries an invalid core parameter."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotFoundError(AnalyticsError, LookupError):
    """A referenced entity could not be resolved."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class IncompleteSnapshotError(AnalyticsError):
    """A snapshot declared complete is missing referenced entities."""

    def __init__(self, sprint_id: str, missing_members: list[str], missing_tasks: list[str]):
        self.sprint_id = sprint_id
        self.missing_members = missing_members
        self.missing_tasks = missing_tasks

        parts = []
        if missing_members:
            parts.append(f"members {', '.join(missing_members)}")
        if missing_tasks:
            parts.append(f"tasks {', '.join(missing_tasks)}")
        super().__init__(f"Snapshot for sprint {sprint_id} is missing {' and '.join(parts)}")


class IntegrationError(AnalyticsError):
    """A call to an external service failed."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")
