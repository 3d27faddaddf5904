"""Serve the status API: ``python -m backend.apps.status_api``."""

import uvicorn

from backend.core.logging import configure_logging
from backend.core.settings import get_settings


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(
        "backend.apps.status_api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        # keep the dictConfig set up by configure_logging
        log_config=None,
        proxy_headers=settings.trust_proxy_headers,
    )


if __name__ == "__main__":
    main()
