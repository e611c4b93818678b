"""
Document schemas, including the extraction diagnostic.

The diagnostic is a discriminated union on `outcome` so callers always
know which shape they received.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field

from scout.schemas.base import CamelModel


class DocumentOut(CamelModel):
    id: str
    user_id: str
    filename: str
    original_name: str
    mime_type: str
    size: int
    status: str = Field(description="processing, completed or failed")
    url: str = Field(description="Path of the stored file under /uploads")
    summary: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DocumentResponse(CamelModel):
    document: DocumentOut


class DocumentsResponse(CamelModel):
    documents: List[DocumentOut]


class ReprocessResponse(CamelModel):
    message: str
    document_id: str
    status: str


class ExtractionSucceeded(CamelModel):
    outcome: Literal["extracted"] = "extracted"
    document_id: str
    mime_type: str
    characters: int
    preview: str = Field(description="First 500 characters of the extracted text")


class ExtractionFailed(CamelModel):
    outcome: Literal["failed"] = "failed"
    document_id: str
    mime_type: str
    error: str


ExtractionResult = Annotated[
    Union[ExtractionSucceeded, ExtractionFailed],
    Field(discriminator="outcome"),
]
