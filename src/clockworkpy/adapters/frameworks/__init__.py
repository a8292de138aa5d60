"""Framework adapters: raw ASGI and FastAPI."""
