from __future__ import annotations

import argparse

import uvicorn

from httpstat.main import create_app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the instrumented httpstat demo server")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("--port", type=int, default=8080, help="Port to listen on")
    args = parser.parse_args()

    uvicorn.run(create_app(), host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
