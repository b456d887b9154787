"""
staybook.api.__main__

`python -m staybook.api` / `staybook-api`: serve the marketplace API with uvicorn.
"""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI

from staybook.api.app import create_app
from staybook.settings import get_settings


def build_app() -> FastAPI:
    # uvicorn factory target; builds against the real Stripe/FCM/S3 clients.
    return create_app(settings=get_settings())


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "staybook.api.__main__:build_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.env == "dev",
        log_config=None,  # structlog
        proxy_headers=True,
        # Stripe retries webhooks that time out; keep the connection open long enough.
        timeout_keep_alive=30,
    )


if __name__ == "__main__":
    main()
