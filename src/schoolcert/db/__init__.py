"""Database access for the student store."""

from schoolcert.db.database import Database
from schoolcert.db.init import init_database

__all__ = ["Database", "init_database"]
