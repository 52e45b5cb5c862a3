class BoggleError(Exception):
    """Base for errors reported to the client as {"error": message}."""
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {'error': self.message}


class ValidationError(BoggleError):
    status_code = 400


class StateConflictError(BoggleError):
    status_code = 400


class AuthorizationError(BoggleError):
    status_code = 403


class NotFoundError(BoggleError):
    status_code = 404


class UnexpectedError(BoggleError):
    status_code = 500
