"""Deliver queued auth emails (confirmation / password reset) and retry failures."""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from cashtrackr.config import check_production_config, load_config
from cashtrackr.db import init_db
from cashtrackr.emails.mailer import build_mailer
from cashtrackr.emails.worker import run_outbox_forever


def main() -> None:
    cfg = load_config()
    check_production_config(cfg)
    init_db(cfg.DB_DSN)
    run_outbox_forever(cfg, build_mailer(cfg))


if __name__ == "__main__":
    main()
