#!/usr/bin/env python3
"""
scripts/init_db.py — Database Initialisation CLI
================================================

Usage:
  python -m scripts.init_db                 # apply pending migrations
  python -m scripts.init_db --seed          # ... then seed an empty database
  python -m scripts.init_db --db /tmp/cv.db --seed --seed-file data/seed.yaml

Applies the same migrations and seeding the server runs at startup, for use
outside the server lifecycle (deploy hooks, fresh checkouts).

Dependent files:
  - config_loader.py (database.path, seed.source_path, logging.level)
  - db/migrations.py, db/seeder.py
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from config_loader import load_settings
from db.migrations import apply_migrations, create_schema
from db.seeder import SeedError, Seeder
from db.store import CvStore, StorageUnavailable

log = logging.getLogger("cv.migrations")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="init_db",
        description="Apply CV database migrations and optionally seed it.",
    )
    p.add_argument(
        "--db", metavar="PATH", default=None,
        help="SQLite database file (default: database.path from config)",
    )
    p.add_argument(
        "--seed", action="store_true",
        help="Seed the database after migrating (skipped if any table has rows)",
    )
    p.add_argument(
        "--seed-file", dest="seed_file", metavar="PATH", default=None,
        help="Seed fixture (default: seed.source_path from config)",
    )
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()

    logging.basicConfig(
        level=settings.logging.level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
    )

    db_path = args.db or str(settings.resolve(settings.database.path))
    store = CvStore(db_path)
    try:
        if store.in_memory:
            create_schema(store)
        else:
            applied = apply_migrations(store)
            for label in applied:
                print(f"  applied {label}")

        if args.seed:
            seed_path = args.seed_file or settings.resolve(settings.seed.source_path)
            counts = Seeder(store, seed_path).seed()
            if counts:
                print("  seeded " + ", ".join(f"{n} {table}" for table, n in counts.items()))
            else:
                print("  database already contains data, seeding skipped")
    except (StorageUnavailable, SeedError) as e:
        log.error(f"Database initialisation failed: {e}")
        return 1
    finally:
        store.close()

    print(f"Database ready: {store.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
