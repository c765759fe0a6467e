"""Pytest fixtures for integration tests against a mock appliance.

The appliance runs as a real HTTPS server on 127.0.0.1 with the session
self-signed certificate, so pinning and hostname checks are exercised for
real.
"""

from __future__ import annotations

import ssl
from collections.abc import Generator
from pathlib import Path

import pytest

from freebox_exporter.core.auth import Authenticator
from freebox_exporter.core.credentials import CredentialStore
from freebox_exporter.core.ssl_adapter import create_pinned_session
from freebox_exporter.core.transport import ApplianceTransport

from .mock_appliance_server import MockApplianceServer


@pytest.fixture(scope="session")
def test_certs(tmp_path_factory, certificate_pair) -> tuple[str, str]:
    """Write the session certificate and key to files.

    Returns:
        Tuple of (cert_path, key_path)
    """
    cert_dir: Path = tmp_path_factory.mktemp("certs")
    cert_path = cert_dir / "cert.pem"
    key_path = cert_dir / "key.pem"
    cert_path.write_text(certificate_pair[0])
    key_path.write_text(certificate_pair[1])
    return str(cert_path), str(key_path)


@pytest.fixture
def appliance(test_certs) -> Generator[MockApplianceServer, None, None]:
    """Provide a running mock appliance over HTTPS."""
    cert_path, key_path = test_certs
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(cert_path, key_path)

    server = MockApplianceServer(ssl_context=context)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def pinned_transport(appliance, test_certificate) -> Generator[ApplianceTransport, None, None]:
    """Transport trusting only the session certificate."""
    transport = ApplianceTransport(appliance.api_url, session=create_pinned_session(test_certificate), timeout=5)
    yield transport
    transport.session.close()


@pytest.fixture
def fast_polling(monkeypatch):
    """Allow sub-second authorization polling."""
    from freebox_exporter.core.auth import authenticator as authenticator_module

    monkeypatch.setattr(authenticator_module, "MIN_POLLING_INTERVAL", 0.01)


@pytest.fixture
def registered(appliance, pinned_transport, store: CredentialStore, fast_polling) -> Authenticator:
    """Authenticator whose registration was granted on the mock appliance."""
    from freebox_exporter.context import registration_request

    appliance.auto_grant = True
    authenticator = Authenticator(pinned_transport, store)
    result = authenticator.register(registration_request())
    authenticator.await_authorization(result.track_id, interval=0.01)
    return authenticator
