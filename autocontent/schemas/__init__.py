"""Request and response models for the HTTP API."""

from autocontent.schemas.common import BaseResponse, PaginationMetadata

__all__ = ["BaseResponse", "PaginationMetadata"]
