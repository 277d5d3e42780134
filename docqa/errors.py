"""Error types surfaced by the HTTP layer.

Each error carries the status code it maps to, so route handlers can
raise and let the app-level error handlers build the JSON body.
"""
from typing import Any, Dict, Optional


class DocQAError(Exception):
    """Base class for request-terminating errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(DocQAError):
    """Invalid input: missing upload, bad file type, oversize, empty question."""

    status_code = 400


class NotFoundError(DocQAError):
    """Unknown preview id or history id."""

    status_code = 404


class UpstreamError(DocQAError):
    """Extraction, embedding or completion collaborator failed."""

    status_code = 500
