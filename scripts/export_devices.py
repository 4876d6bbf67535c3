import argparse
import logging
import sys

from config import ENV_PATH, load_settings
from etl.errors import DeviceExportError
from etl.logs import close_logging, start_log_session
from etl.pipeline import run

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    ap = argparse.ArgumentParser(
        prog="intune-device-export",
        description="Exporta os managed devices do Intune para DevicePayload.json e DevicePayload.csv.",
    )
    ap.add_argument("--tenant-id", help="tenant (obrigatório para credenciais de serviço)")
    ap.add_argument("--path", dest="credential_path", help="arquivo de credencial criptografado")
    ap.add_argument("--client-id")
    ap.add_argument("--client-secret")
    ap.add_argument("--use-interactive-login", action="store_true", default=None,
                    help="login interativo no navegador")
    ap.add_argument("--log-path")
    ap.add_argument("--output-directory")
    ap.add_argument("--env-file", default=ENV_PATH, help="arquivo .env (default: ao lado do projeto)")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = load_settings(
        env_path=args.env_file,
        tenant_id=args.tenant_id,
        credential_path=args.credential_path,
        client_id=args.client_id,
        client_secret=args.client_secret,
        use_interactive_login=args.use_interactive_login,
        log_path=args.log_path,
        output_directory=args.output_directory,
    )
    start_log_session(settings.log_path)
    try:
        written = run(settings)
    except DeviceExportError as exc:
        return exc.exit_code
    finally:
        close_logging()

    for kind, path in written.items():
        print(f"{kind}: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
