import json
import logging
from pathlib import Path

import pandas as pd

from config import resolve_credentials
from etl.errors import AuthenticationError, ConfigurationError, DeviceExportError, ExportError, RetrievalError
from etl.models import EXPORT_FIELDS, ManagedDevice
from etl.session import GraphSession

logger = logging.getLogger(__name__)

JSON_NAME = "DevicePayload.json"
CSV_NAME = "DevicePayload.csv"


def retrieve_devices(api) -> list[ManagedDevice]:
    """Busca todos os managed devices do tenant (paginação fica no GraphAPI)."""
    logger.info("Retrieving managed devices")
    try:
        items = api.get_managed_devices()
    except RetrievalError:
        logger.error("Device retrieval failed", exc_info=True)
        raise
    except Exception as exc:
        logger.error("Device retrieval failed", exc_info=True)
        raise RetrievalError(f"Device retrieval failed: {exc}") from exc

    devices = [ManagedDevice.from_graph(raw) for raw in items]
    logger.info("Retrieved %d managed devices", len(devices))
    return devices


def to_frame(devices) -> pd.DataFrame:
    return pd.DataFrame([d.to_record() for d in devices], columns=EXPORT_FIELDS, dtype=object)


def ensure_output_directory(path) -> Path:
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Cannot create output directory %s", path, exc_info=True)
        raise ConfigurationError(f"Cannot create output directory {path}: {exc}") from exc
    return path


def export_json(devices, path) -> Path:
    """Todos os devices, com ou sem nome. Sobrescreve o arquivo."""
    path = Path(path)
    records = [d.to_record() for d in devices]
    try:
        path.write_text(json.dumps(records, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to write %s", path, exc_info=True)
        raise ExportError(f"Failed to write {path}: {exc}") from exc
    logger.info("JSON export written: %s (%d devices)", path, len(records))
    return path


def export_csv(devices, path) -> Path:
    """Só devices com deviceName preenchido. Sobrescreve o arquivo."""
    path = Path(path)
    named = [d for d in devices if d.has_name]
    df = to_frame(named)
    try:
        df.to_csv(path, index=False, encoding="utf-8", lineterminator="\n")
    except OSError as exc:
        logger.error("Failed to write %s", path, exc_info=True)
        raise ExportError(f"Failed to write {path}: {exc}") from exc
    skipped = len(devices) - len(named)
    logger.info("CSV export written: %s (%d devices, %d without name skipped)", path, len(named), skipped)
    return path


def export_devices(devices, output_directory) -> dict:
    """
    Grava DevicePayload.json e DevicePayload.csv em output_directory.
    Lista vazia: só avisa, nenhum arquivo é criado ou tocado.
    """
    if not devices:
        logger.warning("No managed devices returned; export skipped")
        return {}

    out = ensure_output_directory(output_directory)
    return {
        "json": export_json(devices, out / JSON_NAME),
        "csv": export_csv(devices, out / CSV_NAME),
    }


def _resolve(settings):
    try:
        return resolve_credentials(settings)
    except AuthenticationError as exc:
        logger.error("Credential check failed: %s", exc, exc_info=True)
        raise


def run(settings, session=None) -> dict:
    """
    Credenciais -> conexão -> busca -> exportação.
    O disconnect roda uma única vez, dê certo ou não.
    """
    session = session or GraphSession()
    try:
        strategy = _resolve(settings)
        api = session.connect(strategy)
        devices = retrieve_devices(api)
        written = export_devices(devices, settings.output_directory)
        logger.info("Script execution completed")
        return written
    except DeviceExportError:
        logger.error("Script execution failed")
        raise
    except Exception:
        logger.exception("Script execution failed")
        raise
    finally:
        session.disconnect()
