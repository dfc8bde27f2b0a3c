"""Adapters – Redis backend and FastAPI/Starlette integration (optional extras)."""
