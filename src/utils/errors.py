# src/utils/errors.py
class AppError(Exception):
    """Base error class for application exceptions."""
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code

class InvalidRequestError(AppError):
    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, status_code=400)

class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401)

class FeatureDisabledError(AppError):
    def __init__(self, message: str = "AI features are currently disabled"):
        super().__init__(message, status_code=403)

class NotFoundError(AppError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404)

class UpstreamError(AppError):
    """The LLM provider failed before any output was streamed."""
    def __init__(self, message: str = "AI provider request failed"):
        super().__init__(message, status_code=502)
