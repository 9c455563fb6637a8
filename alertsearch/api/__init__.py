"""HTTP API for alert search."""
