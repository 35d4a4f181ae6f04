import pytest

from sefaz_status.core.tracing import set_tracing_enabled


@pytest.fixture(autouse=True)
def disable_tracing():
    """Testes não dependem de spans OpenTelemetry."""
    set_tracing_enabled(False)
    yield
    set_tracing_enabled(True)
