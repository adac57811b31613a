"""FastAPI application for AutoContent."""
