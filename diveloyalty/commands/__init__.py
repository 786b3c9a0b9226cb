"""
CLI Commands.

Usage:
    flask loyalty yearly-check                 # Run the yearly check for the current year
    flask loyalty yearly-check --dry-run       # Preview reductions
    flask loyalty yearly-check --year 2026     # Run for a specific year
    flask loyalty tiers                        # Print the tier table
"""
from .scheduled import init_app as init_scheduled_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_scheduled_commands(app)
