"""Flask application package for schoolcert.

Public API::

    from schoolcert.app import create_app
"""

from schoolcert.app.factory import create_app

__all__ = ["create_app"]
