class CommandBoundaryError(Exception):
    """
    Base class for errors returned to remote callers of the command endpoint

    Each subclass carries the HTTP status code used in the response.
    """

    status_code = 400

    def __init__(self, message, details=None, status_code=None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class InvalidRequest(CommandBoundaryError):
    status_code = 400


class AuthFailed(CommandBoundaryError):
    status_code = 403


class CommandError(CommandBoundaryError):
    """
    A recognised command which could not be completed
    """

    status_code = 400
