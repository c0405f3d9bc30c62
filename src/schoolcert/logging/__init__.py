"""Logging subsystem for schoolcert.

Public API::

    from schoolcert.logging import configure_logging

    configure_logging(settings.logging)
"""

from schoolcert.logging.setup import configure_logging

__all__ = ["configure_logging"]
