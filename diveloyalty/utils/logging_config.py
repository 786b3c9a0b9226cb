"""
Logging setup.

Configures the root logger once per process; modules log through
logging.getLogger(__name__) and request handlers through current_app.logger.
"""
import logging
import os
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

_configured = False


def setup_logging(level: str = None) -> None:
    """Configure root logging. Safe to call more than once."""
    global _configured

    if _configured:
        return

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(log_level)
    root.addHandler(handler)

    # APScheduler is chatty at INFO
    logging.getLogger('apscheduler').setLevel(logging.WARNING)

    _configured = True
