"""
Classificador de resultados de sondagem.

Transforma um ProbeOutcome bruto (status HTTP, erro de transporte, corpo,
latência) em um veredito semântico online/unstable/offline.

Três formatos de falha são distinguidos:
- Alcançado e respondido: houve resposta HTTP (mesmo 403/500/405).
  Base online, sujeita às checagens de conteúdo e latência.
- Alcançado mas recusado no TLS: exigência de certificado, falha de
  handshake ou reset ativo. Prova de vida, nunca offline.
- Não alcançado: timeout, DNS, host inacessível. Único caso de transporte
  que produz offline.

Precedência (cada regra é final quando dispara):
1. erro de transporte
2. regra de código HTTP
3. formato do conteúdo
4. latência (somente rebaixa online -> unstable)
"""

import codecs
import logging
from dataclasses import dataclass
from typing import Optional

from .constants import (
    DEFAULT_STATUS_CODE_VERDICT,
    FORBIDDEN_STATUS_CODE,
    MARKUP_CONTENT_TYPES,
    MARKUP_PREFIXES,
    RULES_VERSION,
    STATUS_CODE_RULES,
    TRANSPORT_ERROR_RULES,
)
from .models import AvailabilityVerdict, ProbeOutcome, Status, TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassifierConfig:
    """Parâmetros ajustáveis do classificador."""
    latency_threshold_ms: int = 2000
    # 403 = WAF bloqueou, mas o servidor está vivo
    forbidden_is_online: bool = True
    # O endpoint crítico é um web service (WSDL/XML), não uma página
    expect_structured_body: bool = True
    min_body_bytes: int = 200
    connection_reset_status: Status = Status.UNSTABLE

    def __post_init__(self):
        if self.latency_threshold_ms <= 0:
            raise ValueError("latency_threshold_ms deve ser positivo")
        if self.connection_reset_status not in (Status.ONLINE, Status.UNSTABLE):
            raise ValueError("connection_reset_status deve ser online ou unstable")


# Comentários e prólogo XML podem anteceder o DOCTYPE de uma página de bloqueio
_PREAMBLE_MARKERS = ((b"<!--", b"-->"), (b"<?xml", b"?>"))


def _skip_preamble(head: bytes) -> bytes:
    """Remove BOM, espaços, comentários e prólogo XML do início do corpo."""
    if head.startswith(codecs.BOM_UTF8):
        head = head[len(codecs.BOM_UTF8):]
    head = head.lstrip().lower()
    while True:
        for opener, closer in _PREAMBLE_MARKERS:
            if head.startswith(opener):
                end = head.find(closer)
                if end < 0:
                    return head
                head = head[end + len(closer):].lstrip()
                break
        else:
            return head


class OutcomeClassifier:
    """Aplica as tabelas de regras a um ProbeOutcome."""

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()

    @property
    def rules_version(self) -> str:
        return RULES_VERSION

    def classify(self, outcome: ProbeOutcome) -> AvailabilityVerdict:
        if outcome.reached_http:
            verdict = self._classify_response(outcome)
        else:
            verdict = self._classify_transport(outcome)

        logger.debug(
            f"Classificação: {verdict.status.value} ({verdict.diagnostic})",
            extra={"elapsed_ms": outcome.elapsed_ms, "http_status": outcome.http_status},
        )
        return verdict

    def _classify_transport(self, outcome: ProbeOutcome) -> AvailabilityVerdict:
        status, message = TRANSPORT_ERROR_RULES[outcome.transport_error]
        if outcome.transport_error is TransportError.CONNECTION_RESET:
            status = self.config.connection_reset_status
        if outcome.error_detail and status is Status.OFFLINE:
            message = f"{message}: {outcome.error_detail}"
        return AvailabilityVerdict(status, message)

    def _classify_response(self, outcome: ProbeOutcome) -> AvailabilityVerdict:
        code = outcome.http_status
        tentative = self._status_for_code(code)
        if tentative is Status.OFFLINE:
            return AvailabilityVerdict(Status.OFFLINE, f"Bloqueado (HTTP {code})")

        if self.config.expect_structured_body:
            mismatch = self._content_mismatch(outcome)
            if mismatch:
                return AvailabilityVerdict(Status.OFFLINE, f"{mismatch} (HTTP {code})")

        if outcome.elapsed_ms > self.config.latency_threshold_ms:
            return AvailabilityVerdict(
                Status.UNSTABLE,
                f"Lento: {outcome.elapsed_ms}ms > {self.config.latency_threshold_ms}ms (HTTP {code})",
            )

        return AvailabilityVerdict(tentative, f"OK (HTTP {code})")

    def _status_for_code(self, code: int) -> Status:
        if code == FORBIDDEN_STATUS_CODE:
            return Status.ONLINE if self.config.forbidden_is_online else Status.OFFLINE
        return STATUS_CODE_RULES.get(code, DEFAULT_STATUS_CODE_VERDICT)

    def _content_mismatch(self, outcome: ProbeOutcome) -> Optional[str]:
        """Retorna o motivo quando o corpo parece uma página de erro/bloqueio."""
        body = outcome.body or b""
        head = _skip_preamble(body[:2048])

        if any(head.startswith(prefix.encode()) for prefix in MARKUP_PREFIXES):
            return "Página HTML no lugar do serviço"

        content_type = (outcome.content_type or "").split(";")[0].strip().lower()
        if content_type in MARKUP_CONTENT_TYPES:
            return f"Content-Type inesperado: {content_type}"

        if len(body) < self.config.min_body_bytes:
            return f"Resposta curta demais ({len(body)} bytes)"

        return None


def classify(outcome: ProbeOutcome, config: Optional[ClassifierConfig] = None) -> AvailabilityVerdict:
    """Atalho funcional para OutcomeClassifier(config).classify(outcome)."""
    return OutcomeClassifier(config).classify(outcome)
