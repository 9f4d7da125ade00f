"""Service layer: provider resolution and the HTTP API."""
