"""Pytest configuration and fixtures for freebox_exporter tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from freebox_exporter.config import (
    ApiConfiguration,
    Configuration,
    CoreConfiguration,
    LogConfiguration,
    MetricsConfiguration,
)
from freebox_exporter.core.categories import ApplianceMode, MetricCategory
from freebox_exporter.core.credentials import CredentialStore
from freebox_exporter.core.transport import ApplianceTransport


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Writable data directory."""
    directory = tmp_path / "data"
    directory.mkdir()
    return directory


@pytest.fixture
def store(data_dir: Path) -> CredentialStore:
    """Empty credential store."""
    return CredentialStore(data_dir)


@pytest.fixture
def registered_store(store: CredentialStore) -> CredentialStore:
    """Credential store holding an application token."""
    store.store("app-token-123")
    return store


@pytest.fixture
def mock_transport() -> MagicMock:
    """Transport double; configure ``get``/``post`` per test."""
    transport = MagicMock(spec=ApplianceTransport)
    transport.api_url = "https://mafreebox.freebox.fr/api/"
    return transport


def make_configuration(data_dir: Path, **overrides) -> Configuration:
    """Build a Configuration with test defaults."""
    api = ApiConfiguration(
        mode=overrides.pop("mode", ApplianceMode.ROUTER),
        refresh=overrides.pop("refresh", 5),
        host=overrides.pop("host", "mafreebox.freebox.fr"),
        timeout=overrides.pop("timeout", 5.0),
        ca_file=overrides.pop("ca_file", None),
        tls_hostname=overrides.pop("tls_hostname", None),
    )
    metrics = MetricsConfiguration(
        enabled=frozenset(overrides.pop("enabled", set(MetricCategory))),
        prefix=overrides.pop("prefix", "fbx_exporter"),
    )
    configuration = Configuration(
        api=api,
        metrics=metrics,
        core=CoreConfiguration(data_directory=data_dir, port=overrides.pop("port", 9102)),
        log=LogConfiguration(level="info", retention=31),
    )
    assert not overrides, f"Unknown overrides: {overrides}"
    return configuration


@pytest.fixture
def configuration(data_dir: Path) -> Configuration:
    return make_configuration(data_dir)


def generate_self_signed_cert(common_name: str = "localhost") -> tuple[str, str]:
    """Generate a self-signed certificate valid for localhost and 127.0.0.1.

    Returns:
        Tuple of (cert_pem, key_pem)
    """
    import ipaddress
    from datetime import datetime, timedelta, timezone

    from cryptography import x509
    from cryptography.hazmat.primitives import hashes, serialization
    from cryptography.hazmat.primitives.asymmetric import rsa
    from cryptography.x509.oid import NameOID

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    subject = issuer = x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Freebox Exporter Tests"),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=1))
        .add_extension(
            x509.SubjectAlternativeName(
                [
                    x509.DNSName(common_name),
                    x509.IPAddress(ipaddress.IPv4Address("127.0.0.1")),
                ]
            ),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    return cert_pem, key_pem


@pytest.fixture(scope="session")
def certificate_pair() -> tuple[str, str]:
    """Self-signed (cert_pem, key_pem) shared by the whole session."""
    pytest.importorskip("cryptography", reason="cryptography package required for TLS tests")
    return generate_self_signed_cert()


@pytest.fixture(scope="session")
def test_certificate(certificate_pair) -> str:
    """PEM of the session test certificate."""
    return certificate_pair[0]


@pytest.fixture(scope="session")
def other_certificate() -> str:
    """A second, unrelated self-signed certificate."""
    pytest.importorskip("cryptography", reason="cryptography package required for TLS tests")
    return generate_self_signed_cert()[0]
