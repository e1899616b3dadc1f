"""Domain errors raised by services and turned into HTTP responses by the app."""


class ServiceError(ValueError):
    """An operation refused for a business reason."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(ServiceError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404)


class PermissionDeniedError(ServiceError):
    def __init__(self, message: str = "Not enough permissions"):
        super().__init__(message, status_code=403)


class ConflictError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, status_code=409)
