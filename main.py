"""20 Questions - server launcher."""

import argparse
import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))


def main():
    parser = argparse.ArgumentParser(description="20 Questions API server")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Session storage directory (default: ./data)")
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--reload", action="store_true",
                        help="Restart on source changes")
    args = parser.parse_args()

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # the app module reads DATA_DIR when uvicorn imports it
    if args.data_dir:
        os.environ["DATA_DIR"] = str(args.data_dir.resolve())

    uvicorn.run("twenty_questions.app:app", host=HOST, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
