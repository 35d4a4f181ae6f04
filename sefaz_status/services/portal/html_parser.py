"""
Parser da tabela de disponibilidade do Portal Nacional da NF-e.

Cada linha da tabela traz o autorizador na primeira coluna e uma bolinha
colorida (imagem) por serviço nas colunas seguintes.
"""

import logging
from typing import List

from bs4 import BeautifulSoup, FeatureNotFound, Tag

from sefaz_status.services.monitor.aggregator import MatrixRow
from sefaz_status.services.monitor.constants import CHANNEL_COLUMN_COUNT
from sefaz_status.services.monitor.models import Status

logger = logging.getLogger(__name__)

TABLE_SELECTORS = (
    "table.tabelaListagemDados",
    "table#ctl00_ContentPlaceHolder1_gdvDisponibilidade2",
)

# Trechos do nome da imagem -> status
ICON_STATUS = (
    ("verde", Status.ONLINE),
    ("amarel", Status.UNSTABLE),
    ("vermelh", Status.OFFLINE),
)


def decode_icon(cell: Tag) -> Status:
    """Decodifica a cor da bolinha de uma célula; cinza/ausente vira unknown."""
    img = cell.find("img")
    src = (img.get("src") or "").lower() if img else ""
    for marker, status in ICON_STATUS:
        if marker in src:
            return status
    return Status.UNKNOWN


def _make_soup(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "lxml")
    except FeatureNotFound:
        return BeautifulSoup(html, "html.parser")


def parse_availability_table(html: str) -> List[MatrixRow]:
    """
    Extrai a matriz de status do HTML do portal.

    Linhas sem células <td> (cabeçalho) são ignoradas. Linhas curtas são
    repassadas como estão: quem decide descartá-las é o agregador.

    Args:
        html: HTML da página de disponibilidade

    Returns:
        Lista de MatrixRow na ordem da tabela
    """
    if not html:
        return []

    soup = _make_soup(html)
    table = None
    for selector in TABLE_SELECTORS:
        table = soup.select_one(selector)
        if table is not None:
            break
    if table is None:
        logger.warning("⚠️ Tabela de disponibilidade não encontrada no HTML do portal")
        return []

    rows: List[MatrixRow] = []
    for tr in table.find_all("tr"):
        cells = tr.find_all("td")
        if not cells:
            continue
        state = cells[0].get_text(strip=True)
        channels = [decode_icon(cell) for cell in cells[1:1 + CHANNEL_COLUMN_COUNT]]
        rows.append(MatrixRow(state=state, channels=channels))

    logger.debug(f"Portal: {len(rows)} linhas extraídas da tabela")
    return rows
