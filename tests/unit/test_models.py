"""
Testes unitários para os modelos do monitor.
"""

import pytest

from sefaz_status.services.monitor.models import (
    AvailabilityVerdict,
    DocumentType,
    ProbeOutcome,
    ServiceStatusRecord,
    Status,
    TransportError,
)
from tests.factories import OBSERVED_AT, make_record


class TestServiceStatusRecord:

    def test_identity_fields_protected(self):
        record = make_record()
        with pytest.raises(ValueError):
            record.with_channels(state="SP")
        with pytest.raises(ValueError):
            record.with_channels(observed_at=OBSERVED_AT)

    def test_worst_status(self):
        record = make_record(cancellation=Status.UNSTABLE, protocol_lookup=Status.UNKNOWN)
        assert record.worst_status() is Status.UNSTABLE

    def test_dict_round_trip(self):
        record = make_record(authorization=Status.OFFLINE, diagnostic="Timeout", latency_ms=5000)
        data = record.to_dict()

        assert data["authorization"] == "offline"
        assert data["document_type"] == "NFCe"
        assert ServiceStatusRecord.from_dict(data) == record

    def test_naive_timestamp_from_storage_is_utc(self):
        data = make_record().to_dict()
        data["observed_at"] = OBSERVED_AT.replace(tzinfo=None)
        assert ServiceStatusRecord.from_dict(data).observed_at == OBSERVED_AT


class TestValueObjects:

    def test_negative_elapsed_rejected(self):
        with pytest.raises(ValueError):
            ProbeOutcome(elapsed_ms=-1, transport_error=TransportError.TIMEOUT)

    def test_reached_http(self):
        assert ProbeOutcome(elapsed_ms=5, http_status=500).reached_http is True
        assert ProbeOutcome(elapsed_ms=5, transport_error=TransportError.TIMEOUT).reached_http is False

    def test_verdict_cannot_be_unknown(self):
        with pytest.raises(ValueError):
            AvailabilityVerdict(Status.UNKNOWN)

    def test_severity_order(self):
        order = [Status.UNKNOWN, Status.ONLINE, Status.UNSTABLE, Status.OFFLINE]
        assert sorted(order, key=lambda s: s.severity) == order

    def test_document_type_values(self):
        assert DocumentType("NFe") is DocumentType.NFE
        assert DocumentType("NFCe") is DocumentType.NFCE
