"""HTTP surface: readiness, catalog and on-demand execution endpoints."""
