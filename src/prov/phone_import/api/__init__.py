"""API layer for phone import.

Contains:
- FastAPI router with endpoints
- Pydantic schemas for request/response validation
"""

from .router import router
from .schemas import (
    BatchResponse,
    ClassifiedRowDTO,
    CommitRequest,
    CommitResponse,
    ImportResultDTO,
    ModelsResponse,
    UploadResponse,
)

__all__ = [
    "router",
    "ClassifiedRowDTO",
    "ImportResultDTO",
    "UploadResponse",
    "CommitRequest",
    "CommitResponse",
    "BatchResponse",
    "ModelsResponse",
]
