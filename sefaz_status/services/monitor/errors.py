"""Exceções do monitor."""


class MonitorError(Exception):
    """Base das falhas do próprio monitor (não da SEFAZ)."""
    pass


class PortalLayoutError(MonitorError):
    """Portal nacional não retornou nenhuma linha utilizável."""

    def __init__(self, message: str, reason: str = "layout_changed"):
        super().__init__(message)
        self.reason = reason


class PersistenceError(MonitorError):
    """Falha ao gravar registros no armazenamento."""
    pass
