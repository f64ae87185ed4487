"""Entry point: configure logging, restore local state and run the till."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from till.config import DATABASE_URL, DB_PATH, LOG_PATH
from till.data import default_state
from till.pos_app import TillApp
from till.remote import create_remote_store
from till.session import TillSession


def configure_logging(path: str = LOG_PATH, level: int = logging.INFO) -> None:
    """Append log records to a file; the terminal belongs to the UI."""
    log_file = Path(path)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s", datefmt="%Y-%m-%dT%H:%M:%SZ")
    formatter.converter = time.gmtime
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def build_session() -> TillSession:
    state = default_state()
    store = create_remote_store(DATABASE_URL)
    if store is None:
        session = TillSession(state, db_path=DB_PATH)
    else:
        session = TillSession.with_remote(state, store, db_path=DB_PATH)
    session.load_local()
    return session


def main() -> None:
    """Run the Textual application."""
    configure_logging()
    session = build_session()
    session.sync.start()
    logging.getLogger(__name__).info("till started sync_enabled=%s", session.sync.enabled)
    TillApp(session).run()


if __name__ == "__main__":
    main()
