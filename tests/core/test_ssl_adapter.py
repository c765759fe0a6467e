"""Tests for certificate pinning helpers."""

from __future__ import annotations

import ssl

import pytest
import requests

from freebox_exporter.core.exceptions import CertificateError
from freebox_exporter.core.ssl_adapter import (
    PinnedCertificateAdapter,
    create_pinned_context,
    create_pinned_session,
    is_certificate_error,
    pinned_certificate_path,
    resolve_trust_anchor,
)


class TestIsCertificateError:
    """Telling trust failures from handshake failures."""

    def test_verify_failed_message(self):
        error = requests.exceptions.SSLError("[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed")
        assert is_certificate_error(error)

    def test_hostname_mismatch(self):
        error = requests.exceptions.SSLError("hostname '192.168.1.254' doesn't match 'mafreebox.freebox.fr'")
        assert is_certificate_error(error)

    def test_nested_verification_error(self):
        inner = ssl.SSLCertVerificationError("verification failed")
        outer = requests.exceptions.SSLError(inner)
        assert is_certificate_error(outer)

    def test_handshake_error(self):
        error = requests.exceptions.SSLError("[SSL: SSLV3_ALERT_HANDSHAKE_FAILURE] handshake failure")
        assert not is_certificate_error(error)

    def test_cause_chain(self):
        try:
            try:
                raise ssl.SSLCertVerificationError("bad cert")
            except ssl.SSLCertVerificationError as inner:
                raise requests.exceptions.SSLError("wrapped") from inner
        except requests.exceptions.SSLError as err:
            assert is_certificate_error(err)


class TestTrustAnchor:
    """Resolving the PEM trust anchor."""

    def test_no_anchor(self, data_dir):
        with pytest.raises(CertificateError, match="register"):
            resolve_trust_anchor(None, data_dir)

    def test_pinned_certificate_used(self, data_dir, test_certificate):
        pinned_certificate_path(data_dir).write_text(test_certificate)
        assert resolve_trust_anchor(None, data_dir) == test_certificate

    def test_ca_file_wins(self, data_dir, tmp_path, test_certificate):
        ca_file = tmp_path / "ca.pem"
        ca_file.write_text(test_certificate)
        pinned_certificate_path(data_dir).write_text("garbage")
        assert resolve_trust_anchor(ca_file, data_dir) == test_certificate

    def test_not_pem(self, data_dir, tmp_path):
        ca_file = tmp_path / "ca.pem"
        ca_file.write_text("hello")
        with pytest.raises(CertificateError):
            resolve_trust_anchor(ca_file, data_dir)


class TestPinnedContext:
    """SSL context and adapter configuration."""

    def test_context_requires_verification(self, test_certificate):
        context = create_pinned_context(test_certificate)
        assert context.verify_mode == ssl.CERT_REQUIRED
        assert context.verify_flags & ssl.VERIFY_X509_PARTIAL_CHAIN
        assert context.get_ca_certs()

    def test_invalid_pem(self):
        with pytest.raises(CertificateError):
            create_pinned_context("-----BEGIN CERTIFICATE-----\nnope\n-----END CERTIFICATE-----\n")

    def test_adapter_passes_hostname(self, test_certificate):
        adapter = PinnedCertificateAdapter(test_certificate, expected_hostname="mafreebox.freebox.fr")
        kwargs = adapter.poolmanager.connection_pool_kw
        assert kwargs["assert_hostname"] == "mafreebox.freebox.fr"
        assert isinstance(kwargs["ssl_context"], ssl.SSLContext)

    def test_session_mounts_adapter_for_https(self, test_certificate):
        session = create_pinned_session(test_certificate)
        assert isinstance(session.get_adapter("https://mafreebox.freebox.fr/api/"), PinnedCertificateAdapter)
        assert not isinstance(session.get_adapter("http://127.0.0.1/"), PinnedCertificateAdapter)
