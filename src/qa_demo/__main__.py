"""
Run the QA demo web server.

    python -m qa_demo --model distilbert-base-cased-distilled-squad --port 5000
"""
import argparse
import dataclasses
from typing import List, Optional

from .app import create_app
from .config import QAConfig


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="qa_demo", description="Extractive question answering demo")
    parser.add_argument("--host", type=str, default="0.0.0.0")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument("--model", type=str, default=None, help="hub model id or local model directory")
    parser.add_argument("--device", type=str, default=None)
    parser.add_argument("--top-k", type=int, default=None)
    parser.add_argument("--lazy", action="store_true", help="load the model on the first request")
    parser.add_argument("--single-flight", action="store_true", help="allow one request in flight at a time")
    parser.add_argument("--debug", action="store_true")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace, base: Optional[QAConfig] = None) -> QAConfig:
    """Apply command-line overrides on top of the environment config."""
    config = base or QAConfig.from_env()
    overrides = {}
    if args.model:
        overrides["model"] = args.model
    if args.device:
        overrides["device"] = args.device
    if args.top_k is not None:
        overrides["top_k"] = args.top_k
    if args.lazy:
        overrides["eager_load"] = False
    if args.single_flight:
        overrides["single_flight"] = True
    return dataclasses.replace(config, **overrides)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    app = create_app(build_config(args))
    # The reloader would start a second worker in the child process.
    app.run(host=args.host, port=args.port, debug=args.debug, use_reloader=False)


if __name__ == "__main__":
    main()
