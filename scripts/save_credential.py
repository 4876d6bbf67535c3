import argparse
import getpass
import sys

from config import ENV_PATH, load_settings
from etl.credentials import generate_key, save_credential_file
from etl.errors import AuthenticationError


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Grava clientId/clientSecret criptografados para o --path.")
    ap.add_argument("--path", help="arquivo de saída")
    ap.add_argument("--client-id")
    ap.add_argument("--client-secret", help="se omitido, é pedido no terminal")
    ap.add_argument("--key", help="chave Fernet (default: INTUNE_CREDENTIAL_KEY)")
    ap.add_argument("--generate-key", action="store_true", help="só imprime uma chave nova e sai")
    ap.add_argument("--env-file", default=ENV_PATH)
    args = ap.parse_args(argv)

    if args.generate_key:
        print(generate_key())
        return 0

    settings = load_settings(env_path=args.env_file, credential_path=args.path, client_id=args.client_id)
    if not settings.credential_path:
        print("Informe --path (ou INTUNE_CREDENTIAL_PATH).", file=sys.stderr)
        return 2

    client_id = settings.client_id or input("Client ID: ").strip()
    secret = args.client_secret or getpass.getpass("Client secret: ").strip()
    if not (client_id and secret):
        print("Client ID e secret são obrigatórios.", file=sys.stderr)
        return 2

    try:
        path = save_credential_file(settings.credential_path, client_id, secret, args.key or settings.credential_key)
    except AuthenticationError as exc:
        print(exc, file=sys.stderr)
        return exc.exit_code
    print(f"Credencial gravada em {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
