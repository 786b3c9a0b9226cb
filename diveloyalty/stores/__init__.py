"""
Profile store backends.

The backend is picked by the PROFILE_STORE setting and attached to the app in
create_app(); code reaches it through extensions.get_profile_store().
"""
import logging

from ..extensions import PROFILE_STORE_KEY
from .base import ProfileStore
from .memory import MemoryProfileStore
from .sql import SQLProfileStore

logger = logging.getLogger(__name__)


def create_profile_store(config) -> ProfileStore:
    """Build the store selected by config['PROFILE_STORE']."""
    backend = config.get('PROFILE_STORE', 'sql')

    if backend == 'memory':
        return MemoryProfileStore()
    if backend == 'firestore':
        # Imported lazily so SQL deployments don't load the Google client
        from .firestore import FirestoreProfileStore
        return FirestoreProfileStore(project=config.get('FIRESTORE_PROJECT'))
    return SQLProfileStore()


def init_profile_store(app, store: ProfileStore = None) -> ProfileStore:
    """Attach a profile store to the app."""
    store = store or create_profile_store(app.config)
    app.extensions[PROFILE_STORE_KEY] = store
    logger.info(f'Profile store: {type(store).__name__}')
    return store


__all__ = [
    'ProfileStore',
    'MemoryProfileStore',
    'SQLProfileStore',
    'create_profile_store',
    'init_profile_store',
]
