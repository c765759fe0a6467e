"""Certificate-pinned HTTPS support for the appliance API.

The appliance serves a certificate issued by its vendor CA, which is not in
the public trust store. Every request is verified against a single trust
anchor instead: an operator supplied CA file, or the certificate captured
from the appliance the first time the exporter registered.

Hostnames are checked against the vendor name (``mafreebox.freebox.fr`` or
the discovered ``api_domain``), never against a LAN address.
"""

from __future__ import annotations

import hashlib
import logging
import ssl
from pathlib import Path

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.ssl_ import create_urllib3_context

from ..const import DEFAULT_TIMEOUT, PINNED_CERT_FILE_NAME
from .exceptions import CertificateError

_LOGGER = logging.getLogger(__name__)

# Substrings OpenSSL and urllib3 use when verification (not the handshake) fails
_VERIFY_FAILURE_MARKERS = (
    "certificate verify failed",
    "certificate_verify_failed",
    "hostname mismatch",
    "doesn't match",
    "does not match",
)


def create_pinned_context(ca_data: str) -> ssl.SSLContext:
    """Create an SSL context that trusts only ``ca_data``.

    Partial chains are accepted so a pinned leaf or intermediate certificate
    is enough to anchor verification.

    Raises:
        CertificateError: If ``ca_data`` holds no usable certificate.
    """
    context = create_urllib3_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_REQUIRED
    context.verify_flags |= ssl.VERIFY_X509_PARTIAL_CHAIN
    try:
        context.load_verify_locations(cadata=ca_data)
    except (ssl.SSLError, ValueError) as err:
        raise CertificateError(f"Trust anchor is not a valid PEM certificate: {err}") from err
    return context


class PinnedCertificateAdapter(HTTPAdapter):
    """HTTPAdapter verifying the appliance against a pinned trust anchor.

    ``expected_hostname`` overrides the name matched against the
    certificate. When None, the host from the request URL is used.
    """

    def __init__(self, ca_data: str, expected_hostname: str | None = None, **kwargs):
        # HTTPAdapter.__init__ builds the pool manager, so these must exist first
        self._ssl_context = create_pinned_context(ca_data)
        self._expected_hostname = expected_hostname
        super().__init__(**kwargs)

    def _pool_kwargs(self, kwargs: dict) -> dict:
        kwargs["ssl_context"] = self._ssl_context
        if self._expected_hostname:
            kwargs["assert_hostname"] = self._expected_hostname
        return kwargs

    def init_poolmanager(self, *args, **kwargs):
        """Initialize pool manager with the pinned SSL context."""
        return super().init_poolmanager(*args, **self._pool_kwargs(kwargs))

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        """Ensure proxied connections use the pinned SSL context too."""
        return super().proxy_manager_for(proxy, **self._pool_kwargs(proxy_kwargs))

    def cert_verify(self, conn, url, verify, cert):
        """Require verification but never load the public CA bundle."""
        super().cert_verify(conn, url, False, cert)
        if url.lower().startswith("https"):
            conn.cert_reqs = "CERT_REQUIRED"
            conn.ca_certs = None
            conn.ca_cert_dir = None


def create_pinned_session(ca_data: str, expected_hostname: str | None = None) -> requests.Session:
    """Create a requests Session whose HTTPS traffic is pinned to ``ca_data``."""
    session = requests.Session()
    session.mount("https://", PinnedCertificateAdapter(ca_data, expected_hostname))
    _LOGGER.debug("Created pinned session (hostname check: %s)", expected_hostname or "request host")
    return session


def is_certificate_error(error: Exception) -> bool:
    """Check whether an SSL failure comes from certificate validation.

    Handshake problems (protocol, cipher, reset) are transport failures; a
    rejected certificate or hostname is a trust failure and is fatal.

    Args:
        error: The exception raised by requests/urllib3.

    Returns:
        True if the certificate or its hostname was rejected.
    """
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLCertVerificationError):
            return True
        if any(marker in str(current).lower() for marker in _VERIFY_FAILURE_MARKERS):
            return True
        nested = [arg for arg in getattr(current, "args", ()) if isinstance(arg, BaseException)]
        current = current.__cause__ or current.__context__ or (nested[0] if nested else None)
    return False


def pinned_certificate_path(data_directory: Path) -> Path:
    """Location of the certificate captured at registration."""
    return Path(data_directory) / PINNED_CERT_FILE_NAME


def resolve_trust_anchor(ca_file: Path | None, data_directory: Path) -> str:
    """Load the PEM trust anchor for the appliance.

    The configured CA file wins; otherwise the certificate pinned at
    registration is used.

    Raises:
        CertificateError: If no trust anchor is available or readable.
    """
    candidates = [Path(ca_file)] if ca_file else [pinned_certificate_path(data_directory)]
    for path in candidates:
        try:
            pem = path.read_text(encoding="ascii")
        except FileNotFoundError:
            continue
        except (OSError, UnicodeDecodeError) as err:
            raise CertificateError(f"Cannot read trust anchor {path}: {err}") from err
        if "BEGIN CERTIFICATE" not in pem:
            raise CertificateError(f"Trust anchor {path} holds no PEM certificate")
        return pem
    raise CertificateError(
        f"No trust anchor found ({candidates[0]}); set [api] ca_file or run the register command"
    )


def fetch_appliance_certificate(host: str, port: int, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Retrieve the certificate the appliance presents, without verifying it.

    Only used while registering, to pin the appliance on first use.

    Raises:
        CertificateError: If the certificate cannot be retrieved.
    """
    try:
        return ssl.get_server_certificate((host, port), timeout=timeout)
    except OSError as err:
        raise CertificateError(f"Cannot retrieve certificate from {host}:{port}: {err}") from err


def certificate_fingerprint(pem: str) -> str:
    """SHA-256 fingerprint of a PEM certificate, colon separated."""
    digest = hashlib.sha256(ssl.PEM_cert_to_DER_cert(pem)).hexdigest().upper()
    return ":".join(digest[i : i + 2] for i in range(0, len(digest), 2))
