"""
Seed Academic DB — Populate academic.db with sample departments, programs,
courses, users and teaching materials.

Steps whose records already exist are reported as skipped.

Usage:
    python scripts/seed_academic_db.py [--db-path academic.db]
"""

import argparse
import logging
import os
import sys
from pathlib import Path

# Add project root to path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

from dotenv import load_dotenv

from storage.academic_store import AcademicStore
from storage.sample_data import seed_sample_data

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


def main() -> None:
    load_dotenv(override=False)
    parser = argparse.ArgumentParser(description="Seed academic records")
    parser.add_argument(
        "--db-path",
        default=os.getenv("ACADEMIC_DB_PATH", "academic.db"),
        help="Path to the academic SQLite file",
    )
    args = parser.parse_args()

    store = AcademicStore(db_path=args.db_path)
    try:
        for line in seed_sample_data(store):
            logger.info(line)
        for table, count in store.table_counts().items():
            logger.info("%-20s %d", table, count)
    finally:
        store.close()


if __name__ == "__main__":
    main()
