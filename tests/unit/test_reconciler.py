"""
Testes unitários para a reconciliação sonda x portal.
"""

import pytest

from sefaz_status.services.monitor.models import AvailabilityVerdict, DocumentType, Status
from sefaz_status.services.monitor.reconciler import CriticalEndpoint, reconcile, reconcile_all
from tests.factories import OBSERVED_AT, make_record

ENDPOINT = CriticalEndpoint("PR", DocumentType.NFCE, "https://nfce.sefa.pr.gov.br/nfce/NFeAutorizacao4?wsdl")


class TestReconcile:

    def test_online_keeps_scraped_channels(self):
        """Sonda online não sobrescreve o portal, mas anexa a latência."""
        shell = make_record(authorization=Status.UNSTABLE, protocol_lookup=Status.OFFLINE)
        result = reconcile(shell, AvailabilityVerdict(Status.ONLINE, "OK (HTTP 200)"), 300)

        assert result.authorization is Status.UNSTABLE
        assert result.protocol_lookup is Status.OFFLINE
        assert result.latency_ms == 300
        assert result.diagnostic is None

    def test_unstable_overrides_authorization_and_service_status(self):
        shell = make_record()
        result = reconcile(shell, AvailabilityVerdict(Status.UNSTABLE, "Lento"), 2500)

        assert result.authorization is Status.UNSTABLE
        assert result.service_status is Status.UNSTABLE
        assert result.authorization_return is Status.ONLINE
        assert result.protocol_lookup is Status.ONLINE
        assert result.diagnostic == "Lento"
        assert result.latency_ms == 2500

    def test_offline_cascades(self):
        """Autorizador fora: canais dependentes caem junto, inutilização não."""
        shell = make_record(cancellation=Status.UNSTABLE)
        result = reconcile(shell, AvailabilityVerdict(Status.OFFLINE, "Timeout"), 5000)

        assert result.authorization is Status.OFFLINE
        assert result.service_status is Status.OFFLINE
        assert result.authorization_return is Status.OFFLINE
        assert result.protocol_lookup is Status.OFFLINE
        assert result.cancellation is Status.UNSTABLE

    @pytest.mark.parametrize("status", [Status.ONLINE, Status.UNSTABLE, Status.OFFLINE])
    def test_idempotent(self, status):
        shell = make_record(authorization_return=Status.UNSTABLE)
        verdict = AvailabilityVerdict(status, "diag")
        once = reconcile(shell, verdict, 100)
        twice = reconcile(once, verdict, 100)
        assert once == twice

    def test_identity_and_timestamp_preserved(self):
        shell = make_record()
        result = reconcile(shell, AvailabilityVerdict(Status.OFFLINE, "x"), 1)
        assert result.key == shell.key
        assert result.observed_at == OBSERVED_AT

    def test_shell_not_mutated(self):
        shell = make_record()
        reconcile(shell, AvailabilityVerdict(Status.OFFLINE, "x"), 1)
        assert shell.authorization is Status.ONLINE
        assert shell.latency_ms is None


class TestReconcileAll:

    def test_only_critical_pair_changes(self):
        records = [
            make_record("PR", DocumentType.NFE),
            make_record("PR", DocumentType.NFCE),
            make_record("SP", DocumentType.NFCE),
        ]
        result = reconcile_all(records, ENDPOINT, AvailabilityVerdict(Status.OFFLINE, "DNS"), 10)

        assert result[0] == records[0]
        assert result[1].authorization is Status.OFFLINE
        assert result[1].latency_ms == 10
        assert result[2] == records[2]

    def test_missing_pair_leaves_records_untouched(self):
        records = [make_record("SP", DocumentType.NFE)]
        result = reconcile_all(records, ENDPOINT, AvailabilityVerdict(Status.OFFLINE, "DNS"), 10)
        assert result == records
