# main.py
"""Main entry point for the operational query router service."""

import uvicorn

from opsrouter.core import Config

# Load environment variables before starting the app
Config.load_env_for_development()

from opsrouter.web.app import app  # noqa: E402

if __name__ == "__main__":
    # Development server
    uvicorn.run(
        "opsrouter.web.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
