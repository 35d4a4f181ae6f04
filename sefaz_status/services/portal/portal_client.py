"""
Cliente HTTP do Portal Nacional da NF-e.
"""

import logging
import random
from typing import List, Optional

import httpx

from sefaz_status.services.monitor.aggregator import MatrixRow
from sefaz_status.services.monitor.errors import PortalLayoutError
from sefaz_status.services.monitor.prober import build_legacy_ssl_context
from .html_parser import parse_availability_table

logger = logging.getLogger(__name__)


def _portal_headers() -> dict:
    # Versão do Chrome variada a cada requisição
    version = random.randint(110, 129)
    return {
        "User-Agent": f"Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                      f"(KHTML, like Gecko) Chrome/{version}.0.0.0 Safari/537.36",
        "Accept-Language": "pt-BR,pt;q=0.9",
    }


class PortalClient:
    """
    Busca e decodifica a matriz de disponibilidade do portal.

    Args:
        url: URL da página de disponibilidade
        timeout: Timeout próprio da busca, em segundos
        transport: Transporte httpx alternativo (usado nos testes)
    """

    def __init__(
        self,
        url: str,
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def fetch_html(self) -> str:
        kwargs = {"timeout": self.timeout, "follow_redirects": True}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        else:
            kwargs["verify"] = build_legacy_ssl_context()

        try:
            async with httpx.AsyncClient(**kwargs) as client:
                response = await client.get(self.url, headers=_portal_headers())
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Portal nacional inacessível: {type(e).__name__}: {e}")
            raise PortalLayoutError(
                f"Portal nacional inacessível: {type(e).__name__}",
                reason="portal_unreachable",
            ) from e

        if response.status_code != 200:
            logger.warning(f"⚠️ Portal nacional respondeu HTTP {response.status_code}")
        return response.text

    async def fetch_matrix(self) -> List[MatrixRow]:
        html = await self.fetch_html()
        rows = parse_availability_table(html)
        logger.info(f"🌐 Portal nacional: {len(rows)} linhas decodificadas")
        return rows
