"""Multi-Swagger HTTP API."""
