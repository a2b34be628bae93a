"""Event log replay and reconciliation."""
