"""Draft lottery server entrypoint.

Usage:
  LOTTERY_DB_PATH=lottery.sqlite3 python server.py --port 8000
  LOTTERY_DB_PATH=lottery.sqlite3 uvicorn server:app
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

import uvicorn

from app.main import app

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> None:
    p = argparse.ArgumentParser(description="Draft lottery HTTP server")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--log-level", default="info")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("starting lottery server on %s:%s", args.host, args.port)
    uvicorn.run(app, host=args.host, port=int(args.port), log_level=str(args.log_level).lower())


if __name__ == "__main__":
    main()
