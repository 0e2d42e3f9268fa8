from __future__ import annotations

"""Manual DB migration helper.

Applies schema migrations and, given ``--user-id``, re-stores that user's
legacy plaintext and untagged ciphertext as tagged ciphertext.
"""

import argparse
import asyncio
from typing import List, Optional

from moodjournal import db, logic


async def migrate(user_id: Optional[str] = None) -> Optional[logic.MigrationReport]:
    await db.init_db()
    if not user_id:
        return None
    sess = logic.sign_in(user_id)
    try:
        return await logic.migrate_legacy_entries(sess)
    finally:
        logic.sign_out(sess)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Migrate the MoodJournal database.")
    parser.add_argument("--db", help="SQLite file (defaults to $MOODJOURNAL_DB)")
    parser.add_argument("--user-id", help="upgrade this user's legacy entries")
    args = parser.parse_args(argv)

    logic.apply_logging_config(logic.load_config())
    if args.db:
        db.DB_PATH = args.db

    report = asyncio.run(migrate(args.user_id))
    if report is not None:
        print(f"upgraded={report.upgraded} skipped={report.skipped} unchanged={report.unchanged}")


if __name__ == "__main__":
    main()
