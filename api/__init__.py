"""REST blueprints and request authentication."""
