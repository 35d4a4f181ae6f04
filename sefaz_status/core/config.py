import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on", "sim")


class Settings:
    # Portal Nacional da NF-e (matriz de disponibilidade)
    PORTAL_URL: str = os.getenv(
        "PORTAL_URL",
        "https://www.nfe.fazenda.gov.br/portal/disponibilidade.aspx"
    )
    PORTAL_TIMEOUT_SECONDS: float = float(os.getenv("PORTAL_TIMEOUT_SECONDS", "8"))

    # Endpoint crítico (teste real) - NFC-e do Paraná
    CRITICAL_STATE: str = os.getenv("CRITICAL_STATE", "PR")
    CRITICAL_DOCUMENT_TYPE: str = os.getenv("CRITICAL_DOCUMENT_TYPE", "NFCe")
    CRITICAL_ENDPOINT_URL: str = os.getenv(
        "CRITICAL_ENDPOINT_URL",
        "https://nfce.sefa.pr.gov.br/nfce/NFeAutorizacao4?wsdl"
    )
    PROBE_TIMEOUT_SECONDS: float = float(os.getenv("PROBE_TIMEOUT_SECONDS", "5"))

    # Classificador
    LATENCY_THRESHOLD_MS: int = int(os.getenv("LATENCY_THRESHOLD_MS", "2000"))
    FORBIDDEN_IS_ONLINE: bool = _env_bool("FORBIDDEN_IS_ONLINE", True)
    EXPECT_STRUCTURED_BODY: bool = _env_bool("EXPECT_STRUCTURED_BODY", True)
    MIN_BODY_BYTES: int = int(os.getenv("MIN_BODY_BYTES", "200"))
    CONNECTION_RESET_STATUS: str = os.getenv("CONNECTION_RESET_STATUS", "unstable")

    # Ciclo e dashboard
    CYCLE_INTERVAL_SECONDS: float = float(os.getenv("CYCLE_INTERVAL_SECONDS", "15"))
    FRESHNESS_WINDOW_SECONDS: int = int(os.getenv("FRESHNESS_WINDOW_SECONDS", "300"))
    HISTORY_DEFAULT_LIMIT: int = int(os.getenv("HISTORY_DEFAULT_LIMIT", "30"))
    HISTORY_MAX_LIMIT: int = int(os.getenv("HISTORY_MAX_LIMIT", "60"))

    # Banco de dados (vazio = armazenamento em memória)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DATABASE_POOL_MIN_SIZE: int = int(os.getenv("DATABASE_POOL_MIN_SIZE", "0"))
    DATABASE_POOL_MAX_SIZE: int = int(os.getenv("DATABASE_POOL_MAX_SIZE", "5"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")


settings = Settings()
