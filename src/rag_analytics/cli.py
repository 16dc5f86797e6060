"""Process driver — ``rag-analytics serve | ingest | ask``.

``serve`` runs ingestion as an explicit startup phase and only then opens
the HTTP listener, so a misconfigured deployment exits with a non-zero
code instead of serving context-free answers.

Usage
-----
    rag-analytics serve --port 8080
    rag-analytics ingest data/report.pdf
    rag-analytics ask "What did the Fed do in March?"
"""

from __future__ import annotations

import argparse
import logging
import sys

from rag_analytics.bootstrap import Components, build_components, run_startup_ingestion
from rag_analytics.config import Settings, settings as default_settings
from rag_analytics.errors import ConfigurationError, RAGError
from rag_analytics.logging_config import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_STARTUP_FAILED = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rag-analytics", description="PDF question answering with RAG")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="ingest configured documents, then serve HTTP")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--skip-ingest", action="store_true", help="serve the existing store as-is")

    ingest = sub.add_parser("ingest", help="ingest PDF files or directories")
    ingest.add_argument("paths", nargs="*", help="defaults to DOCUMENT_PATHS")

    ask = sub.add_parser("ask", help="answer one question against the existing store")
    ask.add_argument("question")

    return parser


def main(argv: list[str] | None = None, *, settings: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or default_settings
    configure_logging(settings.log_level, json_format=settings.log_json)

    try:
        settings.require_credentials()
        components = build_components(settings)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG
    except RAGError as exc:
        logger.error("Startup failed: %s", exc)
        return EXIT_STARTUP_FAILED

    if args.command == "serve":
        return _serve(components, settings, args)
    if args.command == "ingest":
        return _ingest(components, settings, args.paths or None)
    return _ask(components, args.question)


def _ingest(components: Components, settings: Settings, paths: list[str] | None) -> int:
    try:
        stored = run_startup_ingestion(components, settings, paths)
    except RAGError as exc:
        logger.error("Ingestion failed (%s): %s", exc.code, exc)
        return EXIT_STARTUP_FAILED
    print(f"Stored {stored} chunk(s)")
    return EXIT_OK


def _ask(components: Components, question: str) -> int:
    try:
        print(components.query_service.answer(question))
    except RAGError as exc:
        logger.error("Could not answer: %s", exc)
        return EXIT_STARTUP_FAILED
    return EXIT_OK


def _serve(components: Components, settings: Settings, args: argparse.Namespace) -> int:
    if not args.skip_ingest:
        try:
            run_startup_ingestion(components, settings)
        except RAGError as exc:
            logger.error("Startup ingestion failed (%s): %s", exc.code, exc)
            return EXIT_STARTUP_FAILED

    import uvicorn

    from rag_analytics.serving.app import create_app

    app = create_app(components.query_service, default_question=settings.default_question)
    uvicorn.run(app, host=args.host or settings.host, port=args.port or settings.port, log_config=None)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
