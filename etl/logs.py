import logging
import sys
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
BANNER_WIDTH = 60

# bibliotecas muito verbosas em INFO
QUIET_LOGGERS = ("azure", "urllib3", "msal")

# handlers instalados por nós no root logger
_handlers: list[logging.Handler] = []


def close_logging() -> None:
    root = logging.getLogger()
    while _handlers:
        handler = _handlers.pop()
        root.removeHandler(handler)
        handler.close()


def setup_logging(log_path, level=logging.INFO) -> logging.Logger:
    """
    Espelha o log no arquivo (append, UTF-8) e no console.
    Chamar de novo substitui os handlers anteriores, nunca duplica linhas.
    """
    close_logging()
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    console = logging.StreamHandler(sys.stdout)

    root = logging.getLogger()
    for handler in (file_handler, console):
        handler.setFormatter(formatter)
        root.addHandler(handler)
        _handlers.append(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root


def start_log_session(log_path, level=logging.INFO) -> logging.Logger:
    """Grava o banner de início de sessão no arquivo e liga o logging."""
    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime(DATE_FORMAT)
    rule = "=" * BANNER_WIDTH
    with log_path.open("a", encoding="utf-8") as fh:
        fh.write(f"\n{rule}\nSession started {stamp}\n{rule}\n\n")

    root = setup_logging(log_path, level)
    logging.getLogger(__name__).info("Log file: %s", log_path)
    return root
