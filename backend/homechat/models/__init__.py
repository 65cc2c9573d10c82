"""Pydantic models shared by the API, services and repositories."""
