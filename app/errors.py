# app/errors.py


class ConsoleError(Exception):
    """Base class for errors the views render inline."""

    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class AuthError(ConsoleError):
    default_message = "Invalid email or password"


class SessionExpired(ConsoleError):
    default_message = "Session expired"


class NetworkError(ConsoleError):
    default_message = "Could not reach the server"


class ApiError(ConsoleError):
    default_message = "Request failed"
