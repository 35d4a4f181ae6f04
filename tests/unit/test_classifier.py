"""
Testes unitários para o OutcomeClassifier.
"""

import pytest

from sefaz_status.services.monitor.classifier import ClassifierConfig, OutcomeClassifier, classify
from sefaz_status.services.monitor.models import ProbeOutcome, Status, TransportError
from tests.factories import BLOCK_PAGE, XML_BODY, http_outcome


def transport_outcome(error: TransportError, elapsed_ms: int = 5000) -> ProbeOutcome:
    return ProbeOutcome(elapsed_ms=elapsed_ms, transport_error=error, error_detail="detalhe")


class TestTransportErrors:
    """Falhas abaixo do HTTP."""

    def setup_method(self):
        self.classifier = OutcomeClassifier()

    @pytest.mark.parametrize("error", [
        TransportError.TIMEOUT,
        TransportError.HOST_UNREACHABLE,
        TransportError.DNS_FAILURE,
    ])
    def test_unreached_is_always_offline(self, error):
        """Timeout, DNS e host inacessível sempre resultam em offline."""
        for elapsed in (0, 10, 5000, 60000):
            verdict = self.classifier.classify(transport_outcome(error, elapsed))
            assert verdict.status is Status.OFFLINE

    @pytest.mark.parametrize("error", [
        TransportError.CERTIFICATE_DEMAND,
        TransportError.TLS_HANDSHAKE,
    ])
    def test_tls_refusal_is_never_offline(self, error):
        """Recusa no TLS prova que o servidor está vivo."""
        for elapsed in (1, 1500, 4999, 30000):
            verdict = self.classifier.classify(transport_outcome(error, elapsed))
            assert verdict.status is not Status.OFFLINE

    def test_certificate_demand_is_online_even_when_slow(self):
        """Regra de transporte é final: latência não rebaixa."""
        verdict = self.classifier.classify(transport_outcome(TransportError.CERTIFICATE_DEMAND, 9000))
        assert verdict.status is Status.ONLINE
        assert "certificado" in verdict.diagnostic

    def test_connection_reset_default_unstable(self):
        """Reset ativo correlaciona com descarte de carga: instável por padrão."""
        verdict = self.classifier.classify(transport_outcome(TransportError.CONNECTION_RESET))
        assert verdict.status is Status.UNSTABLE

    def test_connection_reset_configurable_online(self):
        """Política de reset é configurável."""
        classifier = OutcomeClassifier(ClassifierConfig(connection_reset_status=Status.ONLINE))
        verdict = classifier.classify(transport_outcome(TransportError.CONNECTION_RESET))
        assert verdict.status is Status.ONLINE

    def test_other_error_is_offline_with_detail(self):
        """Erro desconhecido assume offline e carrega o detalhe bruto."""
        verdict = self.classifier.classify(transport_outcome(TransportError.OTHER))
        assert verdict.status is Status.OFFLINE
        assert "detalhe" in verdict.diagnostic


class TestHttpResponses:
    """Respostas que chegaram na camada HTTP."""

    def setup_method(self):
        self.classifier = OutcomeClassifier()

    @pytest.mark.parametrize("code", [200, 403, 405, 500, 503])
    def test_structured_body_within_threshold_is_online(self, code):
        """Qualquer status com corpo estruturado e latência ok é online."""
        verdict = self.classifier.classify(http_outcome(status=code, elapsed_ms=300))
        assert verdict.status is Status.ONLINE
        assert f"HTTP {code}" in verdict.diagnostic

    @pytest.mark.parametrize("code", [200, 403, 500])
    def test_markup_body_is_offline_regardless_of_status(self, code):
        """Página HTML de bloqueio (WAF) nunca conta como online."""
        verdict = self.classifier.classify(
            http_outcome(status=code, body=BLOCK_PAGE, content_type="text/xml")
        )
        assert verdict.status is Status.OFFLINE
        assert "HTML" in verdict.diagnostic

    def test_markup_detection_ignores_bom_whitespace_and_case(self):
        """BOM, espaços e maiúsculas não escondem a página HTML."""
        body = b"\xef\xbb\xbf  \n<HTML><body>" + b"y" * 400 + b"</body></HTML>"
        verdict = self.classifier.classify(http_outcome(body=body, content_type="text/xml"))
        assert verdict.status is Status.OFFLINE

    @pytest.mark.parametrize("preamble", [
        b"<!-- WAF -->",
        b"<?xml version=\"1.0\"?>\n",
        b"<?xml version=\"1.0\"?><!-- bloqueio -->\n",
    ])
    def test_markup_after_comment_or_xml_prolog(self, preamble):
        """Comentário ou prólogo XML antes do DOCTYPE não escondem a página HTML."""
        body = preamble + b"<!DOCTYPE html><html><body>" + b"y" * 400 + b"</body></html>"
        verdict = self.classifier.classify(http_outcome(body=body, content_type="text/xml"))
        assert verdict.status is Status.OFFLINE

    def test_wsdl_with_xml_prolog_is_online(self):
        assert self.classifier.classify(http_outcome(body=XML_BODY)).status is Status.ONLINE

    def test_html_content_type_is_offline(self):
        """Content-Type de hipertexto no lugar de XML rebaixa para offline."""
        verdict = self.classifier.classify(http_outcome(content_type="text/html; charset=iso-8859-1"))
        assert verdict.status is Status.OFFLINE
        assert "text/html" in verdict.diagnostic

    def test_short_body_is_offline(self):
        """Corpo curto demais para um WSDL é tratado como página de erro."""
        verdict = self.classifier.classify(http_outcome(body=b"<ok/>"))
        assert verdict.status is Status.OFFLINE
        assert "curta" in verdict.diagnostic

    def test_empty_body_is_offline(self):
        verdict = self.classifier.classify(http_outcome(body=b""))
        assert verdict.status is Status.OFFLINE

    def test_content_check_can_be_disabled(self):
        """Para páginas genéricas, o formato do corpo não importa."""
        classifier = OutcomeClassifier(ClassifierConfig(expect_structured_body=False))
        verdict = classifier.classify(http_outcome(body=BLOCK_PAGE, content_type="text/html"))
        assert verdict.status is Status.ONLINE

    def test_forbidden_policy_flag(self):
        """403 segue a flag de política configurada."""
        strict = OutcomeClassifier(ClassifierConfig(forbidden_is_online=False))
        assert strict.classify(http_outcome(status=403)).status is Status.OFFLINE
        assert self.classifier.classify(http_outcome(status=403)).status is Status.ONLINE

    def test_forbidden_offline_is_final(self):
        """Bloqueio por 403 não volta a online nem vira unstable por latência."""
        strict = OutcomeClassifier(ClassifierConfig(forbidden_is_online=False))
        verdict = strict.classify(http_outcome(status=403, elapsed_ms=10))
        assert verdict.status is Status.OFFLINE


class TestLatency:
    """Rebaixamento por latência."""

    def test_slow_response_is_unstable(self):
        classifier = OutcomeClassifier(ClassifierConfig(latency_threshold_ms=1000))
        verdict = classifier.classify(http_outcome(elapsed_ms=1500))
        assert verdict.status is Status.UNSTABLE
        assert "1500ms" in verdict.diagnostic

    def test_threshold_is_inclusive_online(self):
        classifier = OutcomeClassifier(ClassifierConfig(latency_threshold_ms=1000))
        assert classifier.classify(http_outcome(elapsed_ms=1000)).status is Status.ONLINE
        assert classifier.classify(http_outcome(elapsed_ms=1001)).status is Status.UNSTABLE

    def test_monotonic_in_latency(self):
        """Aumentar a latência nunca melhora o veredito."""
        classifier = OutcomeClassifier(ClassifierConfig(latency_threshold_ms=800))
        severity = [
            classifier.classify(http_outcome(elapsed_ms=ms)).status.severity
            for ms in range(0, 5000, 50)
        ]
        assert severity == sorted(severity)
        assert severity[0] == Status.ONLINE.severity
        assert severity[-1] == Status.UNSTABLE.severity

    def test_latency_does_not_upgrade_content_offline(self):
        """Regra de conteúdo mais forte não é desfeita pela de latência."""
        verdict = classify(http_outcome(body=BLOCK_PAGE, elapsed_ms=9000))
        assert verdict.status is Status.OFFLINE


class TestConfigAndInvariants:

    def test_invalid_threshold_rejected(self):
        with pytest.raises(ValueError):
            ClassifierConfig(latency_threshold_ms=0)

    def test_reset_status_cannot_be_offline(self):
        with pytest.raises(ValueError):
            ClassifierConfig(connection_reset_status=Status.OFFLINE)

    def test_outcome_requires_exactly_one_signal(self):
        """Sem status HTTP e sem erro de transporte é erro de programação."""
        with pytest.raises(ValueError):
            ProbeOutcome(elapsed_ms=10)
        with pytest.raises(ValueError):
            ProbeOutcome(elapsed_ms=10, http_status=200, transport_error=TransportError.TIMEOUT)

    def test_rules_version_exposed(self):
        assert OutcomeClassifier().rules_version

    def test_xml_fixture_is_plausible(self):
        assert len(XML_BODY) >= 5000


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
