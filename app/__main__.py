"""Run the service with uvicorn: `python -m app`.

uvicorn handles SIGINT/SIGTERM by draining in-flight requests and then
running the app lifespan shutdown, which closes the database pool.
"""

from __future__ import annotations

import uvicorn

from app.core.config import SETTINGS


def main() -> None:
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=SETTINGS.port,
        # Logging is configured by app.core.logging; keep uvicorn's dictConfig out
        log_config=None,
    )


if __name__ == "__main__":
    main()
