"""
Run the API locally:

    python -m zonemap [--host 0.0.0.0] [--port 8000] [--reload]
"""

import argparse

import uvicorn

from zonemap.core.config import settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Zone Map API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (dev only)")
    args = parser.parse_args()

    uvicorn.run(
        "zonemap.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
