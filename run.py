"""Entry point for serving the PetSitters API with uvicorn.

Host, port and auto-reload are read from the environment variables
``HOST``, ``PORT`` and ``RELOAD``.  Other settings (``DATABASE_URL``,
``SECRET_KEY``, ``LOG_LEVEL`` ...) are read by ``core.config``.

Usage:
    python run.py
"""
import os

import uvicorn


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "false").lower() in {"1", "true", "yes"}
    uvicorn.run(
        "petsitters_api.app.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        pass
