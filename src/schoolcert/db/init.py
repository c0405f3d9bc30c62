"""Database initialisation from schoolcert configuration.

Usage::

    from schoolcert.config import get_config
    from schoolcert.db.init import init_database

    db = init_database(get_config().settings.database)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool

from schoolcert.db.database import Database

if TYPE_CHECKING:
    from schoolcert.config.settings import DatabaseSettings

log = logging.getLogger(__name__)


def _settings_to_conninfo(settings: DatabaseSettings) -> str:
    """Map DatabaseSettings to a libpq connection string."""
    return make_conninfo(
        host=settings.host,
        port=settings.port,
        dbname=settings.database,
        user=settings.user,
        password=settings.password,
        sslmode=settings.sslmode,
        application_name="schoolcert",
    )


def init_database(settings: DatabaseSettings) -> Database:
    """Open a connection pool for the student store.

    The pool is opened without waiting for connections so the service
    can start (and report a degraded ``/healthz``) while the database
    is unreachable.

    Parameters
    ----------
    settings:
        The ``database`` section from :class:`SchoolcertSettings`.

    Returns
    -------
    Database
        The ready-to-use database helper.

    """
    log.info(
        "Initialising database connection: %s@%s:%s/%s",
        settings.user,
        settings.host,
        settings.port,
        settings.database,
    )

    pool = ConnectionPool(
        conninfo=_settings_to_conninfo(settings),
        min_size=settings.min_connections,
        max_size=settings.max_connections,
        timeout=settings.connection_timeout,
        name="schoolcert",
        open=False,
    )
    pool.open(wait=False)

    log.info("Database pool opened")
    return Database(pool)
