"""Qbot FastAPI application package."""
