"""Domain errors raised by the service layer and mapped to HTTP responses in main.py."""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 400


class AuthenticationError(ServiceError):
    status_code = 401


class AccessDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    def __init__(self, kind: str, current: str, target: str):
        super().__init__(f"Cannot change {kind} status from {current} to {target}")
        self.current = current
        self.target = target


class StorageError(ServiceError):
    status_code = 502


class RelayError(ServiceError):
    status_code = 502
