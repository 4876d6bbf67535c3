from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

# ordem das colunas nos arquivos exportados
EXPORT_FIELDS = ["deviceName", "id", "model", "lastSyncDateTime"]


def _format_dt(dtval):
    if dtval is None or dtval == "":
        return None
    if isinstance(dtval, datetime):
        if dtval.tzinfo is None:
            dtval = dtval.replace(tzinfo=timezone.utc)
        return dtval.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    return str(dtval)


@dataclass(frozen=True)
class ManagedDevice:
    id: str
    device_name: Optional[str] = None
    model: Optional[str] = None
    last_sync_date_time: Optional[str] = None

    @classmethod
    def from_graph(cls, raw: dict) -> "ManagedDevice":
        """Monta o device a partir de um managedDevice do Graph (chaves camelCase)."""
        return cls(
            id=raw.get("id"),
            device_name=raw.get("deviceName"),
            model=raw.get("model"),
            last_sync_date_time=_format_dt(raw.get("lastSyncDateTime")),
        )

    @property
    def has_name(self) -> bool:
        return self.device_name not in (None, "")

    def to_record(self) -> dict:
        return {
            "deviceName": self.device_name,
            "id": self.id,
            "model": self.model,
            "lastSyncDateTime": self.last_sync_date_time,
        }
