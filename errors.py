"""Error taxonomy shared by the services and mapped to HTTP responses in main.py."""


class ChatError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ChatError):
    status_code = 400
    default_message = "Invalid request data"


class ConflictError(ChatError):
    status_code = 400
    default_message = "Already exists"


class AuthFailure(ChatError):
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(ChatError):
    status_code = 404
    default_message = "Not found"


class InternalError(ChatError):
    pass
