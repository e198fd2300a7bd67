"""Error taxonomy raised by the service layer.

Every error carries the HTTP status the API layer maps it to, so routers never
translate domain failures by hand.
"""

from fastapi import status


class ProfitDeskError(Exception):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(ProfitDeskError):
    """A referenced client, task, timer, objective or record is absent."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, identifier: object | None = None) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found")


class ConflictError(ProfitDeskError):
    """The write collides with existing state."""

    status_code = status.HTTP_409_CONFLICT


class ActiveTimerExistsError(ConflictError):
    """The user already has an open timer."""

    def __init__(self, timer_id: int | None = None) -> None:
        self.timer_id = timer_id
        super().__init__("Active timer exists")


class InvalidInputError(ProfitDeskError):
    """Numeric or referential input the service cannot work with."""

    status_code = status.HTTP_400_BAD_REQUEST


class PersistenceFailure(ProfitDeskError):
    """The underlying transaction could not be committed."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Failed to persist {operation}")


__all__ = [
    "ActiveTimerExistsError",
    "ConflictError",
    "InvalidInputError",
    "NotFoundError",
    "PersistenceFailure",
    "ProfitDeskError",
]
