"""Tests for the API transport and envelope handling."""

from __future__ import annotations

import ssl
from unittest.mock import MagicMock

import pytest
import requests

from freebox_exporter.core.exceptions import (
    ApiResponseError,
    AuthenticationRejected,
    CertificateError,
    TransportError,
)
from freebox_exporter.core.transport import ApiResponse, ApplianceTransport

API_URL = "https://mafreebox.freebox.fr/api/"


def _response(status: int = 200, body=None, invalid_json: bool = False) -> MagicMock:
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    if invalid_json:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def transport(session) -> ApplianceTransport:
    return ApplianceTransport(API_URL, session=session, timeout=7)


class TestApiResponse:
    """Envelope decoding."""

    def test_from_json(self):
        envelope = ApiResponse.from_json({"success": True, "result": {"a": 1}, "uid": "x"})
        assert envelope.success
        assert envelope.result == {"a": 1}
        assert envelope.error_code is None

    def test_not_an_envelope(self):
        with pytest.raises(ApiResponseError):
            ApiResponse.from_json(["not", "an", "envelope"])


class TestRequests:
    """Request building and reply unwrapping."""

    def test_url_and_trailing_slash(self, session):
        transport = ApplianceTransport("https://abcd.fbxos.fr:41234/api", session=session)
        assert transport.url_for("system/") == "https://abcd.fbxos.fr:41234/api/v4/system/"

    def test_get_returns_result_and_sends_token(self, transport, session):
        session.request.return_value = _response(body={"success": True, "result": {"uptime_val": 5}})

        result = transport.get("system/", session_token="tok")

        assert result == {"uptime_val": 5}
        session.request.assert_called_once_with(
            "GET",
            f"{API_URL}v4/system/",
            timeout=7,
            json=None,
            headers={"X-Fbx-App-Auth": "tok"},
        )

    def test_no_auth_header_without_token(self, transport, session):
        session.request.return_value = _response(body={"success": True, "result": {"challenge": "c"}})
        transport.get("login/")
        assert session.request.call_args.kwargs["headers"] == {}

    def test_post_sends_json(self, transport, session):
        session.request.return_value = _response(body={"success": True, "result": {"track_id": 1}})
        transport.post("login/authorize/", {"app_id": "x"})
        assert session.request.call_args.kwargs["json"] == {"app_id": "x"}

    def test_missing_result_is_none(self, transport, session):
        session.request.return_value = _response(body={"success": True})
        assert transport.get("dhcp/static_lease/") is None


class TestErrorMapping:
    """Failures map onto the exception hierarchy."""

    def test_http_403_is_authentication_rejected(self, transport, session):
        session.request.return_value = _response(
            403, {"success": False, "msg": "Invalid session", "error_code": "auth_required"}
        )
        with pytest.raises(AuthenticationRejected) as excinfo:
            transport.get("system/", session_token="old")
        assert excinfo.value.error_code == "auth_required"
        assert excinfo.value.status_code == 403

    def test_invalid_token_code_is_authentication_rejected(self, transport, session):
        session.request.return_value = _response(200, {"success": False, "error_code": "invalid_token"})
        with pytest.raises(AuthenticationRejected):
            transport.get("system/")

    def test_403_without_error_code_is_authentication_rejected(self, transport, session):
        session.request.return_value = _response(403, {"success": False, "msg": "Forbidden"})
        with pytest.raises(AuthenticationRejected):
            transport.get("system/", session_token="old")

    def test_insufficient_rights_keeps_session(self, transport, session):
        session.request.return_value = _response(
            403, {"success": False, "msg": "Missing permission", "error_code": "insufficient_rights"}
        )
        with pytest.raises(ApiResponseError) as excinfo:
            transport.get("dhcp/static_lease/", session_token="tok")
        assert not isinstance(excinfo.value, AuthenticationRejected)
        assert excinfo.value.error_code == "insufficient_rights"
        assert excinfo.value.status_code == 403

    def test_403_without_json(self, transport, session):
        session.request.return_value = _response(403, invalid_json=True)
        with pytest.raises(AuthenticationRejected):
            transport.get("system/")

    def test_error_envelope(self, transport, session):
        session.request.return_value = _response(
            404, {"success": False, "msg": "No such endpoint", "error_code": "invalid_request"}
        )
        with pytest.raises(ApiResponseError) as excinfo:
            transport.get("connection/ftth/")
        assert excinfo.value.error_code == "invalid_request"
        assert "status=404" in str(excinfo.value)

    def test_invalid_json(self, transport, session):
        session.request.return_value = _response(200, invalid_json=True)
        with pytest.raises(ApiResponseError):
            transport.get("system/")

    def test_connection_error(self, transport, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(TransportError) as excinfo:
            transport.get("system/")
        assert excinfo.value.url == f"{API_URL}v4/system/"

    def test_timeout(self, transport, session):
        session.request.side_effect = requests.exceptions.ReadTimeout("slow")
        with pytest.raises(TransportError, match="timed out"):
            transport.get("system/")

    def test_certificate_failure(self, transport, session):
        session.request.side_effect = requests.exceptions.SSLError(
            "[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed: self-signed certificate"
        )
        with pytest.raises(CertificateError):
            transport.get("system/")

    def test_handshake_failure_is_transport_error(self, transport, session):
        session.request.side_effect = requests.exceptions.SSLError(
            ssl.SSLError("[SSL: WRONG_VERSION_NUMBER] wrong version number")
        )
        with pytest.raises(TransportError):
            transport.get("system/")


class TestGetJson:
    """Plain JSON used for discovery."""

    def test_returns_body(self, transport, session):
        session.request.return_value = _response(body={"api_domain": "x.fbxos.fr"})
        assert transport.get_json("https://mafreebox.freebox.fr/api_version") == {"api_domain": "x.fbxos.fr"}

    def test_http_error(self, transport, session):
        session.request.return_value = _response(500, body={})
        with pytest.raises(ApiResponseError):
            transport.get_json("https://mafreebox.freebox.fr/api_version")
