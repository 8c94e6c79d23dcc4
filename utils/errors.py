class ToolError(Exception):
    """Base error for every tool. Carries the HTTP status the web layer uses."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ToolError):
    """Bad or missing user input; nothing was processed."""

    status_code = 400


class ProcessingError(ToolError):
    """A library failed on otherwise valid input (corrupt PDF, unknown codec...)."""

    status_code = 500
