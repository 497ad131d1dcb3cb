#!/usr/bin/env python3
"""Knowledge QA Pipeline - Command-line entry point

Answers questions about a knowledge base file with retrieval-augmented
generation and prints the result as JSON.

Examples:
    python main.py "What is INSAT-3D?"
    python main.py --advanced "What does Oceansat-2 carry?"
    python main.py --batch "What is MOSDAC?" "What is SCATSAT-1?"
    python main.py --health
"""

import argparse
import json
import sys
from pathlib import Path

from core.errors import (
    KNOWLEDGE_BASE_UNAVAILABLE_MESSAGE,
    ConfigurationError,
    RagError,
    status_for,
    user_message_for,
)
from core.query_engine import RagPipeline
from core.settings import SettingsError, get_effective_settings
from libs.loader import load_knowledge_base
from observability.logger import configure_logger, get_logger

logger = get_logger(__name__)

# Default paths
ROOT = Path(__file__).parent
SETTINGS_PATH = ROOT / "config" / "settings.yaml"
KNOWLEDGE_PATH = ROOT / "data" / "knowledge_base.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Answer questions about a knowledge base with RAG."
    )
    parser.add_argument("queries", nargs="*", help="Question(s) to answer")
    parser.add_argument("--settings", type=Path, default=SETTINGS_PATH, help="Path to settings.yaml")
    parser.add_argument("--knowledge", type=Path, default=KNOWLEDGE_PATH, help="Knowledge file (.json, .txt, .md)")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--advanced", action="store_true", help="Use advanced defaults and print full metadata")
    mode.add_argument("--batch", action="store_true", help="Answer every query, reporting failures per query")
    mode.add_argument("--health", action="store_true", help="Check knowledge base and service connectivity")

    parser.add_argument("--metadata", action="store_true", help="Include run metadata in the output")
    parser.add_argument("--top-k", type=int, dest="top_k", help="Override retrieval.top_k")
    parser.add_argument("--chunk-size", type=int, dest="chunk_size", help="Override retrieval.chunk_size")
    parser.add_argument("--chunk-overlap", type=int, dest="chunk_overlap", help="Override retrieval.chunk_overlap")
    parser.add_argument("--temperature", type=float, help="Override retrieval.temperature")
    parser.add_argument("--max-tokens", type=int, dest="max_tokens", help="Override retrieval.max_tokens")
    return parser


def _config_overrides(args: argparse.Namespace) -> dict:
    return {
        "chunk_size": args.chunk_size,
        "chunk_overlap": args.chunk_overlap,
        "top_k": args.top_k,
        "temperature": args.temperature,
        "max_tokens": args.max_tokens,
    }


def _print(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.health and not args.queries:
        parser.error("at least one query is required unless --health is given")

    try:
        settings = get_effective_settings(args.settings)
    except SettingsError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    configure_logger(
        level=settings.observability.log_level,
        log_file=settings.observability.log_file,
    )
    logger.info(f"Configuration loaded from {args.settings}")
    logger.info(f"LLM provider: {settings.llm.provider}, model: {settings.llm.model}")
    logger.info(f"Embedding provider: {settings.embedding.provider}")

    try:
        knowledge = load_knowledge_base(args.knowledge)
    except RagError as e:
        logger.error(f"Knowledge base error: {e}")
        knowledge = None

    try:
        pipeline = RagPipeline.from_settings(settings, knowledge=knowledge)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        _print({"answer": user_message_for(e), "status": status_for(e)})
        return 1

    if args.health:
        report = pipeline.check_health()
        _print(report)
        return 0 if report["healthy"] else 1

    overrides = _config_overrides(args)

    if args.batch:
        if knowledge is None:
            _print({"answer": KNOWLEDGE_BASE_UNAVAILABLE_MESSAGE, "status": "knowledge_base_error"})
            return 1
        try:
            outcomes = pipeline.answer_batch(knowledge, args.queries, overrides)
        except RagError as e:
            _print({"answer": user_message_for(e), "status": status_for(e)})
            return 1
        _print([outcome.to_dict() for outcome in outcomes])
        return 0 if all(outcome.ok for outcome in outcomes) else 1

    exit_code = 0
    for query in args.queries:
        if args.advanced and knowledge is not None:
            try:
                result = pipeline.answer_advanced(knowledge, query, overrides)
            except RagError as e:
                _print({"answer": user_message_for(e), "status": status_for(e)})
                exit_code = 1
                continue
            payload = result.to_dict()
            payload["query"] = query
            _print(payload)
        else:
            response = pipeline.respond(
                query, overrides, include_metadata=args.metadata or args.advanced
            )
            _print(response)
            if response["status"] != "success":
                exit_code = 1
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
