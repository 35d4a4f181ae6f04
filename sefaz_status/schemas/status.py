"""
Schemas Pydantic dos endpoints de status.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from sefaz_status.services.monitor.models import ServiceStatusRecord


class ServiceStatusRecordOut(BaseModel):
    """
    Registro reconciliado de um par (estado, modelo).

    Canais: online | unstable | offline | unknown
    """
    state: str = Field(..., description="UF ou autorizador virtual (ex.: PR, SVRS)")
    document_type: str = Field(..., description="NFe ou NFCe")
    authorization: str
    authorization_return: str
    cancellation: str = Field(..., description="Inutilização")
    protocol_lookup: str = Field(..., description="Consulta de protocolo")
    service_status: str
    observed_at: datetime
    diagnostic: Optional[str] = None
    latency_ms: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "state": "PR",
                "document_type": "NFCe",
                "authorization": "online",
                "authorization_return": "online",
                "cancellation": "online",
                "protocol_lookup": "online",
                "service_status": "online",
                "observed_at": "2025-03-10T14:30:00+00:00",
                "diagnostic": None,
                "latency_ms": 312
            }
        }
    )

    @classmethod
    def from_record(cls, record: ServiceStatusRecord) -> "ServiceStatusRecordOut":
        return cls(**record.to_dict())


class FreshnessResponse(BaseModel):
    """Resumo do último registro conhecido de um par, para o topo do dashboard."""
    state: str
    document_type: str
    observed_at: datetime
    authorization: str
    stale: bool = Field(..., description="Dado mais velho que a janela e autorização não offline")
    headline: str = Field(..., description="Operacional | Instabilidade | Indisponível")


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
