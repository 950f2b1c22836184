"""Application layer: FastAPI app, HTTP API and services."""
