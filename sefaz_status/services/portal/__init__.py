"""
Adaptador do Portal Nacional da NF-e (scraping da matriz de disponibilidade).
"""

from .html_parser import parse_availability_table, decode_icon
from .portal_client import PortalClient

__all__ = [
    'parse_availability_table',
    'decode_icon',
    'PortalClient',
]
