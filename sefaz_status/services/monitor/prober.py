"""
Sonda do endpoint crítico.

Faz exatamente um GET por ciclo, sem retry, aceitando qualquer status HTTP.
Validação de certificado desligada e TLS legado liberado: os servidores da
SEFAZ rodam pilhas TLS antigas e uma falha de handshake é sinal, não ruído.
"""

import asyncio
import logging
import socket
import ssl
import time
from typing import Dict, Iterator, Optional, Tuple

import httpx

from .constants import DEFAULT_HEADERS, LEGACY_CIPHERS
from .models import ProbeOutcome, TransportError

logger = logging.getLogger(__name__)

_DNS_MARKERS = (
    "getaddrinfo",
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "no address associated",
    "name resolution",
)
_UNREACHABLE_MARKERS = ("unreachable", "no route to host")
_CERTIFICATE_MARKERS = ("certificate",)
_TLS_MARKERS = ("ssl", "handshake", "tlsv1 alert", "wrong version number")
_RESET_MARKERS = (
    "reset",
    "socket hang up",
    "server disconnected",
    "eof occurred",
    "connection aborted",
)


def build_legacy_ssl_context() -> ssl.SSLContext:
    """Contexto TLS permissivo: sem verificação e com renegociação legada."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    ctx.options |= getattr(ssl, "OP_LEGACY_SERVER_CONNECT", 0x4)
    try:
        ctx.minimum_version = ssl.TLSVersion.TLSv1
    except ValueError:
        logger.debug("TLSv1 não suportado por este OpenSSL, mantendo mínimo padrão")
    try:
        ctx.set_ciphers(LEGACY_CIPHERS)
    except ssl.SSLError as e:
        logger.warning(f"⚠️ Cifras legadas indisponíveis ({e}), usando cifras padrão")
    return ctx


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def map_transport_error(exc: BaseException) -> TransportError:
    """
    Converte uma exceção de transporte na categoria do vocabulário fixo.

    Args:
        exc: Exceção levantada pelo httpx/asyncio durante a requisição

    Returns:
        TransportError correspondente (OTHER quando não reconhecida)
    """
    chain = list(_exception_chain(exc))

    if any(isinstance(e, (httpx.TimeoutException, asyncio.TimeoutError, socket.timeout)) for e in chain):
        return TransportError.TIMEOUT
    if any(isinstance(e, socket.gaierror) for e in chain):
        return TransportError.DNS_FAILURE

    text = " | ".join(f"{type(e).__name__}: {e}" for e in chain).lower()

    if any(marker in text for marker in _DNS_MARKERS):
        return TransportError.DNS_FAILURE
    if any(marker in text for marker in _UNREACHABLE_MARKERS):
        return TransportError.HOST_UNREACHABLE
    if any(isinstance(e, ConnectionResetError) for e in chain):
        return TransportError.CONNECTION_RESET
    if any(marker in text for marker in _CERTIFICATE_MARKERS):
        return TransportError.CERTIFICATE_DEMAND
    if any(isinstance(e, ssl.SSLError) for e in chain) or any(marker in text for marker in _TLS_MARKERS):
        return TransportError.TLS_HANDSHAKE
    if any(isinstance(e, (httpx.RemoteProtocolError, httpx.ReadError)) for e in chain):
        return TransportError.CONNECTION_RESET
    if any(marker in text for marker in _RESET_MARKERS):
        return TransportError.CONNECTION_RESET

    return TransportError.OTHER


class EndpointProber:
    """
    Executa a sondagem do endpoint crítico.

    Args:
        timeout: Orçamento total da tentativa, em segundos
        headers: Headers de navegador (default DEFAULT_HEADERS)
        transport: Transporte httpx alternativo (usado nos testes)
    """

    def __init__(
        self,
        timeout: float = 5.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.headers = dict(headers or DEFAULT_HEADERS)
        self._transport = transport
        self._ssl_context = build_legacy_ssl_context() if transport is None else None

    def _client(self) -> httpx.AsyncClient:
        if self._transport is not None:
            return httpx.AsyncClient(
                transport=self._transport,
                timeout=self.timeout,
                follow_redirects=False,
            )
        return httpx.AsyncClient(
            verify=self._ssl_context,
            timeout=self.timeout,
            follow_redirects=False,
        )

    async def _get(self, client: httpx.AsyncClient, url: str) -> Tuple[httpx.Response, bytes]:
        """GET com leitura do corpo; corpo que não decodifica vira vazio."""
        async with client.stream("GET", url, headers=self.headers) as response:
            try:
                body = await response.aread()
            except httpx.DecodingError as e:
                # Servidor respondeu: o status HTTP continua valendo
                logger.info(
                    f"🔍 Corpo da sondagem não decodificou ({e}), seguindo com corpo vazio",
                    extra={"url": url, "http_status": response.status_code},
                )
                body = b""
            return response, body

    async def probe(self, url: str) -> ProbeOutcome:
        """
        Faz um único GET no endpoint.

        Qualquer status HTTP (403, 500, 405...) é um resultado válido e vai
        para o classificador. Timeout também é resultado, não exceção.
        """
        start = time.perf_counter()
        try:
            async with self._client() as client:
                response, body = await asyncio.wait_for(
                    self._get(client, url),
                    timeout=self.timeout,
                )
        except (httpx.TransportError, asyncio.TimeoutError, OSError) as e:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            category = map_transport_error(e)
            logger.info(
                f"🔍 Sondagem falhou abaixo do HTTP: {category.value} ({type(e).__name__}: {e})",
                extra={"url": url, "elapsed_ms": elapsed_ms},
            )
            return ProbeOutcome(
                elapsed_ms=elapsed_ms,
                transport_error=category,
                error_detail=f"{type(e).__name__}: {e}"[:300],
            )

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"🔍 Sondagem respondeu HTTP {response.status_code} em {elapsed_ms}ms",
            extra={"url": url, "elapsed_ms": elapsed_ms, "bytes": len(body)},
        )
        return ProbeOutcome(
            elapsed_ms=elapsed_ms,
            http_status=response.status_code,
            body=body,
            content_type=response.headers.get("content-type"),
        )
