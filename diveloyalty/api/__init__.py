"""
API blueprints.
"""
