"""Create an already-confirmed account.

Usage:
  python scripts/create_user.py --name Jane --email jane@example.com --password '...'

NOTE: This is intended for local/dev. It skips the confirmation email.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from cashtrackr.auth.crud import create_user, get_user_by_id, public_user
from cashtrackr.config import load_config
from cashtrackr.db import connect, init_db


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    args = ap.parse_args()

    if len(args.password) < 8:
        ap.error("password must be at least 8 characters")

    cfg = load_config()
    init_db(cfg.DB_DSN)

    with connect(cfg.DB_DSN) as conn:
        user_id = create_user(
            conn,
            name=args.name,
            email=args.email,
            password=args.password,
            token=None,
            confirmed=True,
        )
        if user_id is None:
            ap.error(f"email already registered: {args.email}")
        u = public_user(get_user_by_id(conn, user_id))

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
