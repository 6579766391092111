"""Word Glutton — dev launcher. Starts the API server in watch mode."""

import argparse
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from glutton.config import configure_logging, load_settings

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")


def main():
    parser = argparse.ArgumentParser(description="Word Glutton dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=int(BACKEND_PORT))
    parser.add_argument("--no-reload", action="store_true",
                        help="Disable auto-reload on source changes")
    args = parser.parse_args()

    configure_logging(load_settings())

    # The app reads DATA_DIR at import time, including in reload workers
    if args.data_dir:
        os.environ["DATA_DIR"] = str(args.data_dir.resolve())

    print(f"Starting backend on http://localhost:{args.port} ...")
    uvicorn.run(
        "backend.app:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload,
        reload_dirs=[str(ROOT / "backend"), str(ROOT / "glutton")],
    )


if __name__ == "__main__":
    main()
