"""
Flask extensions and the per-app profile store handle.
"""
from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Relational backend for the SQL profile store
db = SQLAlchemy()

# Migrations
migrate = Migrate()

PROFILE_STORE_KEY = 'profile_store'


def get_profile_store(app=None):
    """
    Return the profile store bound to the app.

    The store is created in create_app() and kept in app.extensions so that
    tests can swap it for an in-memory one.
    """
    app = app or current_app
    try:
        return app.extensions[PROFILE_STORE_KEY]
    except KeyError:
        from .utils.exceptions import ConfigurationError
        raise ConfigurationError('Profile store has not been initialized')
