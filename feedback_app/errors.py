"""
Exception types raised by models and services.

Each carries the HTTP status the error handlers in app.py answer with.
"""


class FeedbackError(Exception):
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(FeedbackError):
    status_code = 400
    default_message = "Missing or invalid fields"


class AuthenticationError(FeedbackError):
    status_code = 401
    default_message = "Invalid email or password"


class AuthorizationError(FeedbackError):
    status_code = 403
    default_message = "Not authorized"


class SubmissionRejected(FeedbackError):
    """Feedback refused because the window is closed or the student is restricted."""
    status_code = 403
    default_message = "Feedback submission is not allowed"


class NotFoundError(FeedbackError):
    status_code = 404
    default_message = "Not found"


class ConflictError(FeedbackError):
    status_code = 409
    default_message = "Record conflicts with existing data"


class StoreError(FeedbackError):
    status_code = 500
    default_message = "Server error"
