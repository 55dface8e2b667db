"""Caravan Trail — dev launcher. Serves the game API with uvicorn."""

import argparse
import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = int(os.getenv("BACKEND_PORT", "13013"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def main():
    parser = argparse.ArgumentParser(description="Caravan Trail dev launcher")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=BACKEND_PORT)
    parser.add_argument("--reload", action="store_true",
                        help="Restart the server when source files change")
    parser.add_argument("--log-level", default=LOG_LEVEL,
                        help="Log level for the game engine (default: INFO)")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print(f"Starting backend on http://localhost:{args.port} ...")
    uvicorn.run(
        "backend.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
