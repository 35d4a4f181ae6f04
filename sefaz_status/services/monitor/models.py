"""
Modelos de dados do monitor de disponibilidade SEFAZ.

Todos os registros são imutáveis (frozen dataclasses): correções geram
novos registros via dataclasses.replace, nunca edição in-place.
"""

from dataclasses import dataclass, field, replace, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Status(str, Enum):
    """Estado semântico de um canal/endpoint."""
    ONLINE = "online"
    UNSTABLE = "unstable"
    OFFLINE = "offline"
    # Somente para canais que o portal não conseguiu decodificar (ícone cinza)
    UNKNOWN = "unknown"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    Status.UNKNOWN: 0,
    Status.ONLINE: 1,
    Status.UNSTABLE: 2,
    Status.OFFLINE: 3,
}


class DocumentType(str, Enum):
    """Modelo de documento fiscal."""
    NFE = "NFe"
    NFCE = "NFCe"


class TransportError(str, Enum):
    """Categorias de falha abaixo da camada HTTP."""
    TIMEOUT = "timeout"
    DNS_FAILURE = "dns_failure"
    HOST_UNREACHABLE = "host_unreachable"
    CONNECTION_RESET = "connection_reset"
    TLS_HANDSHAKE = "tls_handshake"
    CERTIFICATE_DEMAND = "certificate_demand"
    OTHER = "other"


@dataclass(frozen=True)
class ProbeOutcome:
    """
    Resultado bruto de uma sondagem.

    Exatamente um entre http_status e transport_error deve estar presente:
    ou a requisição chegou na camada HTTP, ou falhou abaixo dela.
    """
    elapsed_ms: int
    http_status: Optional[int] = None
    body: Optional[bytes] = None
    content_type: Optional[str] = None
    transport_error: Optional[TransportError] = None
    error_detail: Optional[str] = None

    def __post_init__(self):
        if self.elapsed_ms < 0:
            raise ValueError(f"elapsed_ms negativo: {self.elapsed_ms}")
        if (self.http_status is None) == (self.transport_error is None):
            raise ValueError(
                "ProbeOutcome exige exatamente um entre http_status e transport_error"
            )

    @property
    def reached_http(self) -> bool:
        return self.http_status is not None


@dataclass(frozen=True)
class AvailabilityVerdict:
    status: Status
    diagnostic: Optional[str] = None

    def __post_init__(self):
        if self.status is Status.UNKNOWN:
            raise ValueError("Veredito não pode ser 'unknown'")


CHANNELS: Tuple[str, ...] = (
    "authorization",
    "authorization_return",
    "cancellation",
    "protocol_lookup",
    "service_status",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ServiceStatusRecord:
    """Observação de um par (estado, modelo) em um ciclo."""
    state: str
    document_type: DocumentType
    authorization: Status
    authorization_return: Status
    cancellation: Status
    protocol_lookup: Status
    service_status: Status
    observed_at: datetime = field(default_factory=utc_now)
    diagnostic: Optional[str] = None
    latency_ms: Optional[int] = None

    @property
    def key(self) -> Tuple[str, DocumentType]:
        return self.state, self.document_type

    def channel_values(self) -> Dict[str, Status]:
        return {name: getattr(self, name) for name in CHANNELS}

    def worst_status(self) -> Status:
        return max(self.channel_values().values(), key=lambda s: s.severity)

    def with_channels(self, **changes: Any) -> "ServiceStatusRecord":
        """Retorna uma cópia com os campos alterados (identidade preservada)."""
        for protected in ("state", "document_type", "observed_at"):
            if protected in changes:
                raise ValueError(f"Campo de identidade não pode ser alterado: {protected}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["document_type"] = self.document_type.value
        for name in CHANNELS:
            data[name] = getattr(self, name).value
        data["observed_at"] = self.observed_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceStatusRecord":
        observed_at = data.get("observed_at")
        if isinstance(observed_at, str):
            observed_at = datetime.fromisoformat(observed_at)
        if observed_at is not None and observed_at.tzinfo is None:
            observed_at = observed_at.replace(tzinfo=timezone.utc)
        return cls(
            state=data["state"],
            document_type=DocumentType(data["document_type"]),
            observed_at=observed_at or utc_now(),
            diagnostic=data.get("diagnostic"),
            latency_ms=data.get("latency_ms"),
            **{name: Status(data[name]) for name in CHANNELS},
        )
