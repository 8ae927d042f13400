"""
Exported document models
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class RenderedPage(BaseModel):
    """One fixed-size page image cut from the rendered surface"""
    model_config = ConfigDict(frozen=True)

    page_number: int = Field(ge=1)
    width: int
    height: int
    source_top: int
    source_bottom: int
    image_bytes: bytes

    @property
    def content_height(self) -> int:
        """Rows of surface content on this page; the rest is blank fill"""
        return self.source_bottom - self.source_top


class ExportArtifact(BaseModel):
    """Multi-page document ready for the save/download collaborator"""
    model_config = ConfigDict(frozen=True)

    document_number: str
    filename: str
    content: bytes
    media_type: str = "application/pdf"
    page_count: int
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class ExportResult(BaseModel):
    """Outcome of exporting one document within a batch"""

    document_number: str
    status: str
    filename: Optional[str] = None
    saved_to: Optional[str] = None
    page_count: int = 0
    error_code: Optional[str] = None
    error: Optional[str] = None
    processing_time_ms: float = 0.0


class BatchSummary(BaseModel):
    """Batch export statistics"""

    total_documents: int
    successful: int
    failed: int
    total_pages: int
    average_processing_time_ms: float
    results: List[ExportResult] = []
