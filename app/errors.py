"""
Error taxonomy shared by the routes and the central responder in app.main.
Each error carries the HTTP status it is rendered with.
"""


class AppError(Exception):
    status_code = 500
    default_message = "An internal server error occurred."

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request payload"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Access denied. No token provided."


class InvalidToken(Unauthenticated):
    default_message = "Invalid token."


class Forbidden(AppError):
    status_code = 403
    default_message = "You are not authorized to perform this action"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists"


class Internal(AppError):
    status_code = 500
