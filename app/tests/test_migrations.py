import json

from sqlalchemy import inspect

from app.config import get_settings
from app.db.migrations import create_tables, seed_vocab_lists
from app.db.session import Database
from app.models import VocabList


def test_create_tables(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'schema.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    get_settings.cache_clear()
    try:
        create_tables.create_all()
    finally:
        get_settings.cache_clear()

    database = Database(url)
    try:
        tables = set(inspect(database.engine).get_table_names())
    finally:
        database.dispose()
    assert {"users", "email_verifications", "vocab_lists", "user_vocab_downloads"} <= tables


def test_seed_vocab_lists_upserts_by_name(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'seed.db'}"
    entries = [
        {"name": "CET-4", "jsonUrl": "https://cdn.example.com/cet4.json"},
        {"name": "IELTS", "jsonUrl": "https://cdn.example.com/ielts.json", "version": "2.0"},
    ]
    path = tmp_path / "vocab_lists.json"
    path.write_text(json.dumps(entries), encoding="utf-8")
    monkeypatch.setenv("DATABASE_URL", url)
    get_settings.cache_clear()
    try:
        seed_vocab_lists.main([str(path)])

        entries[1]["jsonUrl"] = "https://cdn.example.com/ielts-v3.json"
        entries[1]["version"] = "3.0"
        path.write_text(json.dumps(entries), encoding="utf-8")
        seed_vocab_lists.main([str(path)])
    finally:
        get_settings.cache_clear()

    database = Database(url)
    db = database.session()
    try:
        rows = {row.name: row for row in db.query(VocabList).all()}
    finally:
        db.close()
        database.dispose()
    assert set(rows) == {"CET-4", "IELTS"}
    assert rows["CET-4"].version == "1.0"
    assert rows["IELTS"].version == "3.0"
    assert rows["IELTS"].json_url == "https://cdn.example.com/ielts-v3.json"
