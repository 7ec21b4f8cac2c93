import math


class PlatformError(Exception):
    """Base class for failures that map onto an HTTP status."""
    status_code = 500

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}

    def to_dict(self):
        body = {'message': self.message}
        if self.errors:
            body['errors'] = self.errors
        return body


class ValidationError(PlatformError):
    status_code = 400

    def __init__(self, errors, message='Invalid input'):
        super().__init__(message, errors)


class NotFoundError(PlatformError):
    status_code = 404


class PermissionDenied(PlatformError):
    status_code = 403


class AuthenticationRequired(PermissionDenied):
    status_code = 401

    def __init__(self, message='Login required'):
        super().__init__(message)


class ConflictError(PlatformError):
    status_code = 409


class CooldownError(PlatformError):
    status_code = 429

    def __init__(self, remaining):
        super().__init__(f'You can answer again in {math.ceil(remaining)}s')
        self.remaining = remaining

    def to_dict(self):
        body = super().to_dict()
        body['cooldown'] = round(self.remaining, 3)
        return body
