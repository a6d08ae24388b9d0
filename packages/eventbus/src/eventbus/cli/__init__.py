"""Event bus administration CLI."""
