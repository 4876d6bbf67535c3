import logging
import time
from datetime import datetime, timezone

import requests
from azure.core.exceptions import AzureError, ClientAuthenticationError

from etl.errors import AuthenticationError, RetrievalError
from etl.models import EXPORT_FIELDS

logger = logging.getLogger(__name__)

GRAPH_URL = "https://graph.microsoft.com"
MANAGED_DEVICES = "deviceManagement/managedDevices"
# renova o token se faltar menos que isso (s)
TOKEN_MARGIN = 120


def _error_message(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    err = body.get("error") if isinstance(body, dict) else None
    if not isinstance(err, dict):
        return resp.text
    return err.get("message") or err.get("code") or resp.text


class GraphAPI:
    """
    Sessão autenticada no Microsoft Graph.
    Mesmo espírito do mygeotab.API: authenticate() uma vez, depois get().
    """

    def __init__(self, credential, scopes, tenant_id=None, base_url=GRAPH_URL,
                 api_version="v1.0", timeout=30, http=None):
        self.credential = credential
        self.scopes = list(scopes)
        self.tenant_id = tenant_id
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self._http = http
        self._token = None

    @property
    def is_connected(self) -> bool:
        return self._token is not None

    def _acquire_token(self):
        try:
            self._token = self.credential.get_token(*self.scopes)
        except ClientAuthenticationError as exc:
            raise AuthenticationError(f"Microsoft Graph rejected the credentials: {exc.message}") from exc
        except AzureError as exc:
            raise AuthenticationError(f"Could not acquire a Microsoft Graph token: {exc}") from exc

    def authenticate(self) -> "GraphAPI":
        self._acquire_token()
        if self._http is None:
            self._http = requests.Session()
        self._http.headers.update({"Accept": "application/json"})
        return self

    def context(self):
        if not self.is_connected:
            return None
        expires = datetime.fromtimestamp(self._token.expires_on, tz=timezone.utc)
        return {
            "tenantId": self.tenant_id,
            "scopes": list(self.scopes),
            "expiresOn": expires.isoformat(),
        }

    def _headers(self) -> dict:
        if not self.is_connected:
            raise RetrievalError("No active Microsoft Graph session; call authenticate() first")
        if self._token.expires_on - time.time() < TOKEN_MARGIN:
            logger.info("Access token about to expire, refreshing")
            self._acquire_token()
        return {"Authorization": f"Bearer {self._token.token}"}

    def get(self, path: str, params=None, max_pages=None) -> list[dict]:
        """GET numa coleção, seguindo @odata.nextLink até a última página (ou max_pages)."""
        url = f"{self.base_url}/{self.api_version}/{path.lstrip('/')}"
        items = []
        page = 0
        while url:
            page += 1
            headers = self._headers()
            try:
                resp = self._http.get(url, params=params, headers=headers, timeout=self.timeout)
            except requests.RequestException as exc:
                raise RetrievalError(f"GET {url} failed: {exc}") from exc

            if resp.status_code >= 400:
                raise RetrievalError(f"GET {url} returned HTTP {resp.status_code}: {_error_message(resp)}")

            try:
                payload = resp.json()
            except ValueError as exc:
                raise RetrievalError(f"GET {url} returned invalid JSON") from exc
            if not isinstance(payload, dict):
                raise RetrievalError(f"GET {url} returned an unexpected payload")

            values = payload.get("value") or []
            items.extend(values)
            logger.debug("Page %d: %d items (total %d)", page, len(values), len(items))

            # nextLink já carrega os parâmetros da consulta
            url = payload.get("@odata.nextLink")
            params = None
            if max_pages and page >= max_pages:
                break
        return items

    def get_managed_devices(self) -> list[dict]:
        return self.get(MANAGED_DEVICES, params={"$select": ",".join(EXPORT_FIELDS)})

    def disconnect(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None
        close = getattr(self.credential, "close", None)
        if callable(close):
            close()
        self._token = None
