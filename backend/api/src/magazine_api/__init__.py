"""FastAPI application for the magazine subscription billing API."""
