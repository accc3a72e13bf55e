"""
TalkToJesus Backend — Application Errors

AppError is the base for every error the service layer raises on purpose.
The handler registered in app.main turns them into JSON responses; 5xx kinds
are rendered with a generic message so provider or store internals never
reach the client.
"""
from typing import Optional


class AppError(Exception):
    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **context):
        self.message = message or self.public_message
        self.context = context
        super().__init__(self.message)


class NotFoundError(AppError):
    status_code = 404
    public_message = "Not found"


class PlanNotFoundError(NotFoundError):
    public_message = "Plan not found"


class ProviderError(AppError):
    """The payment provider (or another third-party API) call failed."""
    status_code = 502
    public_message = "Upstream service error"


class PersistenceError(AppError):
    status_code = 500
    public_message = "Storage error"


class InvalidSignatureError(AppError):
    status_code = 400
    public_message = "Invalid signature"


class ValidationError(AppError):
    status_code = 400
    public_message = "Invalid request"
