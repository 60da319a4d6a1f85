from __future__ import annotations

import argparse
import logging

import uvicorn

from taskgate.mock_systems.analysis_api import create_app


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Serve the seeded mock analysis host for local pipeline dry-runs."
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address.")
    parser.add_argument("--port", type=int, default=9000, help="Bind port.")
    parser.add_argument(
        "--token",
        default=None,
        help="Require this token as the basic-auth username on API routes.",
    )
    parser.add_argument("--log-level", default="info", help="uvicorn log level.")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    logging.basicConfig(level=args.log_level.upper())
    app = create_app(token=args.token)
    print(f"Mock analysis host listening on http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
