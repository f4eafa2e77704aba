from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ServiceError):
    """Referenced year/season/holiday/class/student/teacher does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(ServiceError):
    """Duplicate unique key, or deleting a row that is still referenced."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class ForbiddenError(ServiceError):
    def __init__(self, message: str = "Only administrators can perform this action") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class UnprocessableError(ServiceError):
    """Malformed date ranges, or a class that cannot be provisioned."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY)
