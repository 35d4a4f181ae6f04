"""
Constantes e tabelas de regras do monitor.

As regras do classificador ficam aqui como dados versionados: ajustes de
política alteram estas tabelas, não o fluxo de controle do classificador.
"""

from typing import Dict, Tuple

from .models import Status, TransportError

RULES_VERSION = "2025.3"

# Headers que imitam um navegador real (os WAFs da SEFAZ bloqueiam clientes "crus")
DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
    # Evita reutilização de socket quebrado
    "Connection": "close",
}

# Cifras liberadas para as pilhas TLS legadas dos servidores estaduais
LEGACY_CIPHERS = "ALL:@SECLEVEL=0"

# Falhas de transporte -> (veredito, diagnóstico)
TRANSPORT_ERROR_RULES: Dict[TransportError, Tuple[Status, str]] = {
    # Servidor exigiu certificado cliente: respondeu, logo está vivo
    TransportError.CERTIFICATE_DEMAND: (Status.ONLINE, "Online (Protegido por certificado)"),
    TransportError.TLS_HANDSHAKE: (Status.ONLINE, "Online (SSL Handshake)"),
    # Firewall derrubou ativamente a conexão
    TransportError.CONNECTION_RESET: (Status.ONLINE, "Online (Firewall/TLS Ativo)"),
    # Nenhum byte chegou: indisponível
    TransportError.TIMEOUT: (Status.OFFLINE, "Timeout (Servidor não responde)"),
    TransportError.DNS_FAILURE: (Status.OFFLINE, "DNS não resolvido"),
    TransportError.HOST_UNREACHABLE: (Status.OFFLINE, "Host inacessível"),
    TransportError.OTHER: (Status.OFFLINE, "Erro de conexão desconhecido"),
}

# Códigos HTTP com veredito explícito. Qualquer outro código usa o default:
# uma resposta HTTP prova que rede, DNS e TLS funcionam.
STATUS_CODE_RULES: Dict[int, Status] = {
    200: Status.ONLINE,
    405: Status.ONLINE,
    500: Status.ONLINE,
}
DEFAULT_STATUS_CODE_VERDICT = Status.ONLINE
FORBIDDEN_STATUS_CODE = 403

# Início de documentos de marcação (páginas de bloqueio/manutenção)
MARKUP_PREFIXES = ("<!doctype html", "<html")
MARKUP_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

# Autorizadores virtuais listados no portal nacional além das UFs
VIRTUAL_AUTHORIZERS = frozenset({"AN", "SVAN", "SVRS", "SVC-AN", "SVC-RS"})

# Colunas de canal na tabela do portal (após a coluna do autorizador)
CHANNEL_COLUMN_COUNT = 5

# Respostas que carregam status não podem ser cacheadas em nenhuma camada
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
    "CDN-Cache-Control": "no-store",
    "Surrogate-Control": "no-store",
}
