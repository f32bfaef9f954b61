from typing import Optional


class CanvasError(Exception):
    """Base class for every error raised by mermaid_canvas."""


class ParseError(CanvasError):
    """A single stream message could not be decoded. Never fatal to a stream."""

    def __init__(self, message: str, span: str = ""):
        super().__init__(message)
        self.span = span


class ProtocolError(CanvasError):
    """The stream carried an explicit error event."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RenderError(CanvasError):
    """The renderer rejected the diagram text."""

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.message = message
        self.code = code


class UpstreamError(CanvasError):
    """The AI service answered with a non-OK status."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"AI service returned an error ({status_code}): {body or 'Unknown error'}")
        self.status_code = status_code
        self.body = body


class ConfigError(CanvasError):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def describe(error: BaseException, default: Optional[str] = None) -> str:
    """Short user-facing message for an exception."""
    message = getattr(error, "message", None) or str(error)
    return message or default or error.__class__.__name__
