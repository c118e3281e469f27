"""
Load catalog rows from a JSON file:

    python -m app.db.migrations.seed_vocab_lists vocab_lists.json

The file holds an array of {"name", "jsonUrl", "version"} objects. Rows are
matched by name; existing rows get their URL and version updated.
"""
import argparse
import json
import logging
from pathlib import Path

from app.config import get_settings
from app.db.session import Database
from app.db.transactions import TransactionContext
from app.logging_config import configure_logging
from app.models import VocabList

logger = logging.getLogger(__name__)


def seed_vocab_lists(db, entries: list[dict]) -> int:
    """Upsert catalog entries by name and return how many rows were written."""
    written = 0
    with TransactionContext(db) as tx:
        for entry in entries:
            name = entry["name"]
            json_url = entry["jsonUrl"]
            version = str(entry.get("version") or "1.0")
            row = tx.session.query(VocabList).filter_by(name=name).first()
            if row is None:
                tx.session.add(VocabList(name=name, json_url=json_url, version=version))
                logger.info(f"[Seed] Adding vocab list: {name}")
            else:
                row.json_url = json_url
                row.version = version
                logger.info(f"[Seed] Updating vocab list: {name}")
            written += 1
    return written


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Seed the vocab catalog from a JSON file")
    parser.add_argument("path", type=Path)
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)
    entries = json.loads(args.path.read_text(encoding="utf-8"))
    if not isinstance(entries, list):
        raise SystemExit("Expected a JSON array of vocab lists")

    database = Database(settings.database_url)
    database.create_all()
    db = database.session()
    try:
        count = seed_vocab_lists(db, entries)
    finally:
        db.close()
        database.dispose()
    print(f"{count} vocab lists written.")


if __name__ == "__main__":
    main()
