import sys

from config import load_settings, resolve_credentials
from etl.errors import DeviceExportError
from etl.session import GraphSession


def main(settings=None, session=None) -> int:
    settings = settings or load_settings()
    session = session or GraphSession()
    try:
        api = session.connect(resolve_credentials(settings))
        print("Autenticou:", api.context())

        # uma página basta para checar a permissão de leitura
        devs = api.get("deviceManagement/managedDevices", params={"$top": 1, "$select": "deviceName,id"}, max_pages=1)
        print("Exemplo de device:", devs[0].get("deviceName") if devs else "nenhum")
    except DeviceExportError as exc:
        print("Falhou:", exc, file=sys.stderr)
        return exc.exit_code
    finally:
        session.disconnect()
    return 0


if __name__ == "__main__":
    sys.exit(main())
