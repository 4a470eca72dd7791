#!/usr/bin/env python3
"""
Expire stale bids: the periodic (cron) entrypoint for the expiration sweep.

Every bid still in draft, pending, submitted or in_progress whose end date
is on or before today moves to expired, with a history entry attributed to
the configured system actor.  One failing bid does not stop the sweep; the
exit status is 1 when any bid failed.

Configuration comes from bid_config.get_active_config() (BID_ENGINE_CONFIG,
BID_ENGINE_DATABASE_URL).

Usage:
    python3 scripts/sweep_expired_bids.py
    python3 scripts/sweep_expired_bids.py --db-url postgresql://... --dry-run
"""

import argparse
import sys
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Expire open bids whose end date has passed")
    p.add_argument("--config", default=None, help="Configuration YAML (default: BID_ENGINE_CONFIG or packaged defaults)")
    p.add_argument("--db-url", default=None, help="Database URL (overrides the configuration)")
    p.add_argument("--system-actor-id", default=None, help="Actor recorded on history entries")
    p.add_argument("--dry-run", action="store_true", help="Run the sweep, then roll back")
    p.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    p.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    from bid_batch.services.expiration import sweep_expirations
    from bid_config import get_active_config
    from bid_kernel.db.engine import create_tables, get_session, init_engine_from_url
    from bid_kernel.logging_config import configure_logging

    configure_logging(level=args.log_level.upper())
    config = get_active_config(args.config)

    actor = args.system_actor_id or config.settings.system_actor_id
    if actor is None:
        print("  ERROR: no system actor id (set engine.system_actor_id or pass --system-actor-id)", file=sys.stderr)
        return 2
    system_actor_id = UUID(str(actor))

    init_engine_from_url(args.db_url or config.settings.database_url)
    if args.create_tables:
        create_tables()

    session = get_session()
    try:
        result = sweep_expirations(session, system_actor_id)
        if args.dry_run:
            session.rollback()
        else:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    mode = " (dry run, rolled back)" if args.dry_run else ""
    print(f"  Expired {result.expired_count} bid(s), {result.error_count} error(s){mode}")
    return 1 if result.error_count else 0


if __name__ == "__main__":
    sys.exit(main())
