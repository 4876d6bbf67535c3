import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from azure.identity import ClientSecretCredential, InteractiveBrowserCredential
from cryptography.fernet import Fernet, InvalidToken

from etl.errors import AuthenticationError

# client público "Microsoft Graph Command Line Tools" (login interativo)
GRAPH_CLI_CLIENT_ID = "14d82eec-204b-4c2f-b7e8-296a70dab67d"

READ_SCOPE = "https://graph.microsoft.com/DeviceManagementManagedDevices.Read.All"
APP_SCOPE = "https://graph.microsoft.com/.default"


def generate_key() -> str:
    return Fernet.generate_key().decode("ascii")


def _fernet(key):
    if not key:
        raise AuthenticationError("Credential key missing (INTUNE_CREDENTIAL_KEY).")
    try:
        return Fernet(key.encode("ascii") if isinstance(key, str) else key)
    except (ValueError, TypeError) as exc:
        raise AuthenticationError(f"Credential key is not a valid Fernet key: {exc}") from exc


def save_credential_file(path, client_id: str, client_secret: str, key) -> Path:
    """Serializa clientId/clientSecret criptografados (Fernet) em `path`."""
    path = Path(path)
    blob = json.dumps({"clientId": client_id, "clientSecret": client_secret}).encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_fernet(key).encrypt(blob))
    return path


def load_credential_file(path, key) -> tuple[str, str]:
    """
    Lê o arquivo gerado por save_credential_file.
    Retorna (client_id, client_secret); qualquer problema vira AuthenticationError.
    """
    path = Path(path)
    if not path.is_file():
        raise AuthenticationError(f"Credential file not found: {path}")
    f = _fernet(key)
    try:
        data = json.loads(f.decrypt(path.read_bytes()).decode("utf-8"))
    except InvalidToken as exc:
        raise AuthenticationError(f"Credential file {path} cannot be decrypted with the given key") from exc
    except (OSError, ValueError) as exc:
        raise AuthenticationError(f"Credential file {path} is unreadable: {exc}") from exc

    client_id = (data.get("clientId") or "").strip() if isinstance(data, dict) else ""
    client_secret = (data.get("clientSecret") or "") if isinstance(data, dict) else ""
    if not (client_id and client_secret):
        raise AuthenticationError(f"Credential file {path} does not hold clientId and clientSecret")
    return client_id, client_secret


@dataclass(frozen=True)
class InteractiveLogin:
    tenant_id: Optional[str] = None
    client_id: str = GRAPH_CLI_CLIENT_ID

    def describe(self) -> str:
        return f"interactive login (tenant={self.tenant_id or 'organizations'})"

    def build(self):
        credential = InteractiveBrowserCredential(
            tenant_id=self.tenant_id or "organizations",
            client_id=self.client_id,
        )
        return credential, [READ_SCOPE]


@dataclass(frozen=True)
class SecretCredentials:
    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)

    def describe(self) -> str:
        return f"client secret (tenant={self.tenant_id}, clientId={self.client_id})"

    def build(self):
        credential = ClientSecretCredential(
            tenant_id=self.tenant_id,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )
        return credential, [APP_SCOPE]


@dataclass(frozen=True)
class CredentialFile:
    tenant_id: str
    path: Path
    key: Optional[str] = field(default=None, repr=False)

    def describe(self) -> str:
        return f"credential file {self.path} (tenant={self.tenant_id})"

    def build(self):
        client_id, client_secret = load_credential_file(self.path, self.key)
        return SecretCredentials(self.tenant_id, client_id, client_secret).build()
