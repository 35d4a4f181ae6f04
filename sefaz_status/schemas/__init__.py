"""
Schemas Pydantic da API.
"""
from sefaz_status.schemas.status import (
    ServiceStatusRecordOut,
    FreshnessResponse,
    ErrorResponse,
)

__all__ = [
    "ServiceStatusRecordOut",
    "FreshnessResponse",
    "ErrorResponse",
]
