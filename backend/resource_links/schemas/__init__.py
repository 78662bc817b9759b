"""API Schemas — Pydantic models for request/response and pub/sub payloads."""
