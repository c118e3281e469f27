"""Create the database schema: python -m app.db.migrations.create_tables"""
from sqlalchemy.exc import SQLAlchemyError

from app.config import get_settings
from app.db.session import Database


def create_all() -> None:
    database = Database(get_settings().database_url)
    try:
        database.create_all()
    finally:
        database.dispose()


if __name__ == "__main__":
    try:
        create_all()
        print("Tables created successfully.")
    except SQLAlchemyError as exc:
        raise SystemExit(f"Failed to create tables: {exc}") from exc
