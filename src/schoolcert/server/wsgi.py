"""WSGI entry point for external servers (gunicorn, uWSGI, etc.).

The config file path is read from the ``SCHOOLCERT_CONFIG`` environment
variable.

Example::

    export SCHOOLCERT_CONFIG=/etc/schoolcert/config.yaml
    gunicorn "schoolcert.server.wsgi:app"
"""

from __future__ import annotations

import os
import sys

_config_path = os.environ.get("SCHOOLCERT_CONFIG")
if _config_path is None:
    sys.exit("schoolcert: error: SCHOOLCERT_CONFIG is not set")

# Bootstrap the singleton before anything else imports it.
from schoolcert.config import SchoolcertConfig  # noqa: E402

_config = SchoolcertConfig(config_file=_config_path)

from schoolcert.logging import configure_logging  # noqa: E402

configure_logging(_config.settings.logging)

from schoolcert.db import init_database  # noqa: E402

_db = init_database(_config.settings.database)

from schoolcert.app import create_app  # noqa: E402

app = create_app(config=_config, database=_db)
