"""Request bodies for the JSON endpoints."""
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar
from pydantic import BaseModel, Field
import pydantic

from docqa.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


class QueryRequest(BaseModel):
    """Body of POST /query."""
    question: Optional[str] = Field(None, description="Natural-language question")


class ExportQueryRequest(BaseModel):
    """Body of POST /export-query."""
    format: Literal["pdf", "doc"] = "pdf"
    question: str = ""
    answer: str = ""


class HistoryItem(BaseModel):
    question: str = ""
    answer: str = ""
    timestamp: Optional[str] = None


class ExportHistoryRequest(BaseModel):
    """Body of POST /export-history; without entries the live history is used."""
    format: Literal["pdf", "doc"] = "pdf"
    entries: Optional[List[HistoryItem]] = None


def parse_body(model: Type[M], data: Optional[Dict[str, Any]]) -> M:
    """Validate a JSON body, mapping pydantic errors to a 400.

    Raises:
        ValidationError: With the first failing field in the message
    """
    try:
        return model.model_validate(data or {})
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "body"
        raise ValidationError(f"Invalid '{field}': {first.get('msg')}") from e
