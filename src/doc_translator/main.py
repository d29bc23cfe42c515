"""Entry point for the document translation server."""

import argparse
import os

import uvicorn


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Document translation server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Threads per document for page layout. Overrides PARSE_WORKERS env var.",
    )
    args = parser.parse_args(argv)

    if args.workers:
        os.environ["PARSE_WORKERS"] = str(args.workers)

    from doc_translator.server import app

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
