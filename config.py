import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values

from etl.credentials import CredentialFile, InteractiveLogin, SecretCredentials
from etl.errors import AuthenticationError
from etl.graph import GraphAPI

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"
DEFAULT_LOG_NAME = "DeviceExport.log"

# nome do setting -> variável de ambiente
ENV_VARS = {
    "tenant_id": "INTUNE_TENANT_ID",
    "credential_path": "INTUNE_CREDENTIAL_PATH",
    "client_id": "INTUNE_CLIENT_ID",
    "client_secret": "INTUNE_CLIENT_SECRET",
    "credential_key": "INTUNE_CREDENTIAL_KEY",
    "use_interactive_login": "INTUNE_INTERACTIVE",
    "log_path": "INTUNE_LOG_PATH",
    "output_directory": "INTUNE_OUTPUT_DIR",
}

# nome do setting -> atributo em config_local.py
LOCAL_ATTRS = {
    "tenant_id": "TENANT_ID",
    "credential_path": "CREDENTIAL_PATH",
    "client_id": "CLIENT_ID",
    "client_secret": "CLIENT_SECRET",
    "credential_key": "CREDENTIAL_KEY",
    "use_interactive_login": "INTERACTIVE",
    "log_path": "LOG_PATH",
    "output_directory": "OUTPUT_DIR",
}


@dataclass(frozen=True)
class Settings:
    tenant_id: Optional[str] = None
    credential_path: Optional[Path] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    credential_key: Optional[str] = None
    use_interactive_login: bool = False
    log_path: Path = BASE_DIR / DEFAULT_LOG_NAME
    output_directory: Path = BASE_DIR


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def _clean(values: dict) -> dict:
    out = {}
    for name, value in values.items():
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        out[name] = value
    return out


# 1) config_local.py (arquivo local, não versionado)
def _load_from_local() -> dict:
    try:
        import config_local as cl
    except ImportError:
        return {}
    return _clean({name: getattr(cl, attr, None) for name, attr in LOCAL_ATTRS.items()})


# 2) .env + variáveis de ambiente (o ambiente vence o .env)
def _load_from_env(env_path=ENV_PATH) -> dict:
    raw = {}
    if env_path and Path(env_path).is_file():
        raw.update(dotenv_values(env_path, encoding="utf-8"))
    raw.update(os.environ)
    return _clean({name: raw.get(var) for name, var in ENV_VARS.items()})


def load_settings(env_path=ENV_PATH, **overrides) -> Settings:
    """
    Precedência (menor -> maior): defaults, config_local.py, .env,
    ambiente, argumentos (overrides). Overrides None são ignorados.
    """
    values = {}
    values.update(_load_from_local())
    values.update(_load_from_env(env_path))
    values.update(_clean(overrides))

    if "use_interactive_login" in values:
        values["use_interactive_login"] = _as_bool(values["use_interactive_login"])
    for name in ("credential_path", "log_path", "output_directory"):
        if name in values:
            values[name] = Path(values[name]).expanduser()
    return replace(Settings(), **values)


def resolve_credentials(settings: Settings):
    """Escolhe a estratégia de login. Nenhuma chamada de rede acontece aqui."""
    has_service = bool(settings.credential_path or settings.client_secret)

    if settings.use_interactive_login:
        if has_service:
            raise AuthenticationError(
                "Interactive login and service credentials are mutually exclusive; supply only one."
            )
        return InteractiveLogin(tenant_id=settings.tenant_id)

    if settings.credential_path and settings.client_secret:
        raise AuthenticationError("Supply either a credential file or a client secret, not both.")

    if not has_service:
        raise AuthenticationError(
            "No credentials supplied. Use interactive login, a credential file, "
            "or clientId + clientSecret."
        )

    if not settings.tenant_id:
        raise AuthenticationError("Service credentials require a tenant id.")

    if settings.credential_path:
        return CredentialFile(settings.tenant_id, settings.credential_path, settings.credential_key)

    if not settings.client_id:
        raise AuthenticationError("A client secret requires a client id.")
    return SecretCredentials(settings.tenant_id, settings.client_id, settings.client_secret)


def get_api(strategy, timeout=30) -> GraphAPI:
    credential, scopes = strategy.build()
    api = GraphAPI(credential, scopes, tenant_id=strategy.tenant_id, timeout=timeout)
    try:
        api.authenticate()
    except Exception:
        # credencial recusada ainda precisa ser fechada
        api.disconnect()
        raise
    return api
