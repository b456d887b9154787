"""
staybook.api

HTTP API package for the staybook marketplace.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and response models.
"""


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: request validation + auth + delegation to services.
