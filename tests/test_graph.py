import time
from unittest.mock import MagicMock

import pytest
import requests
from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError

from config import get_api
from etl.errors import AuthenticationError, RetrievalError
from etl.graph import MANAGED_DEVICES, GraphAPI

SCOPES = ["https://graph.microsoft.com/.default"]


def _token(ttl=3600):
    return AccessToken("tok", int(time.time()) + ttl)


def _resp(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload if payload is not None else {}
    resp.text = text
    return resp


@pytest.fixture
def credential():
    cred = MagicMock()
    cred.get_token.return_value = _token()
    return cred


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def api(credential, http):
    return GraphAPI(credential, SCOPES, tenant_id="t1", http=http).authenticate()


def test_authenticate_requests_token_for_scopes(api, credential):
    credential.get_token.assert_called_once_with(*SCOPES)
    assert api.is_connected
    ctx = api.context()
    assert ctx["tenantId"] == "t1"
    assert ctx["scopes"] == SCOPES


def test_rejected_credentials_raise_authentication_error(credential, http):
    credential.get_token.side_effect = ClientAuthenticationError(message="AADSTS7000215: Invalid client secret")
    api = GraphAPI(credential, SCOPES, http=http)

    with pytest.raises(AuthenticationError, match="AADSTS7000215"):
        api.authenticate()
    assert not api.is_connected


def test_get_follows_next_link(api, http):
    next_url = "https://graph.microsoft.com/v1.0/deviceManagement/managedDevices?$skiptoken=abc"
    http.get.side_effect = [
        _resp(payload={"value": [{"id": "1"}, {"id": "2"}], "@odata.nextLink": next_url}),
        _resp(payload={"value": [{"id": "3"}]}),
    ]

    items = api.get_managed_devices()

    assert [i["id"] for i in items] == ["1", "2", "3"]
    first, second = http.get.call_args_list
    assert first.args[0] == "https://graph.microsoft.com/v1.0/deviceManagement/managedDevices"
    assert first.kwargs["params"] == {"$select": "deviceName,id,model,lastSyncDateTime"}
    assert first.kwargs["headers"] == {"Authorization": "Bearer tok"}
    assert second.args[0] == next_url
    assert second.kwargs["params"] is None


def test_get_stops_at_max_pages(api, http):
    http.get.return_value = _resp(payload={"value": [{"id": "1"}], "@odata.nextLink": "https://next"})
    assert len(api.get(MANAGED_DEVICES, max_pages=1)) == 1
    assert http.get.call_count == 1


def test_http_error_raises_retrieval_error(api, http):
    http.get.return_value = _resp(
        status=403,
        payload={"error": {"code": "Forbidden", "message": "Application is not authorized"}},
    )
    with pytest.raises(RetrievalError, match="403.*not authorized"):
        api.get_managed_devices()


def test_transport_error_raises_retrieval_error(api, http):
    http.get.side_effect = requests.ConnectionError("connection reset")
    with pytest.raises(RetrievalError, match="connection reset"):
        api.get_managed_devices()


def test_get_without_session_raises(credential, http):
    api = GraphAPI(credential, SCOPES, http=http)
    with pytest.raises(RetrievalError):
        api.get_managed_devices()
    http.get.assert_not_called()


def test_expiring_token_is_refreshed(credential, http):
    credential.get_token.side_effect = [_token(ttl=10), _token()]
    api = GraphAPI(credential, SCOPES, http=http).authenticate()
    http.get.return_value = _resp(payload={"value": []})

    api.get_managed_devices()

    assert credential.get_token.call_count == 2


def test_disconnect_closes_everything(api, credential, http):
    api.disconnect()

    http.close.assert_called_once()
    credential.close.assert_called_once()
    assert not api.is_connected
    assert api.context() is None


@pytest.mark.parametrize("body", [None, [], ["Forbidden"], {"error": "Forbidden"}])
def test_http_error_with_odd_body_still_raises_retrieval_error(api, http, body):
    resp = _resp(status=403, text="Forbidden")
    resp.json.return_value = body
    http.get.return_value = resp
    with pytest.raises(RetrievalError, match="HTTP 403: Forbidden"):
        api.get_managed_devices()


def test_non_object_payload_raises_retrieval_error(api, http):
    http.get.return_value = _resp(payload=[{"id": "1"}])
    with pytest.raises(RetrievalError, match="unexpected payload"):
        api.get_managed_devices()


def test_get_api_closes_rejected_credential(credential):
    credential.get_token.side_effect = ClientAuthenticationError(message="AADSTS7000215: Invalid client secret")
    strategy = MagicMock(tenant_id="t1")
    strategy.build.return_value = (credential, SCOPES)

    with pytest.raises(AuthenticationError):
        get_api(strategy)

    credential.close.assert_called_once()
