"""
CLI commands - entry points for running and operating the gateway.

Each command follows a consistent pattern:
1. Parse arguments
2. Load environment and configure logging
3. Build the gateway (or just the pieces the command needs)
4. Print results
5. Return exit code (0 ok, 1 failure, 130 interrupted)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from dotenv import load_dotenv
from elasticsearch import ApiError, TransportError
from openai import OpenAIError

from rag_gateway.config import GatewayConfig
from rag_gateway.core.errors import GatewayError

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def _setup() -> GatewayConfig:
    _load_env()
    config = GatewayConfig.from_env()
    configure_logging(config.log_level)
    return config


def run_serve_cli() -> int:
    """Serve the HTTP tools with uvicorn."""
    import uvicorn

    from rag_gateway.api import create_app
    from rag_gateway.gateway import build_gateway
    from rag_gateway.observability import init_tracing, shutdown_tracing

    config = _setup()

    parser = argparse.ArgumentParser(description="Serve the gateway over HTTP")
    parser.add_argument("--host", default=config.host, help="Bind address")
    parser.add_argument("--port", type=int, default=config.port, help="Bind port")
    args = parser.parse_args()

    init_tracing(config.tracing)
    try:
        app = create_app(build_gateway(config))
        print(f"Serving on http://{args.host}:{args.port} ({config.mode} mode)")
        uvicorn.run(app, host=args.host, port=args.port, log_level=config.log_level.lower())
    finally:
        shutdown_tracing()
    return 0


def run_ingest_cli() -> int:
    """Index the enterprise seed corpus into the configured store."""
    from rag_gateway.embeddings import get_embedding_provider
    from rag_gateway.retrieval import get_document_store
    from rag_gateway.retrieval.seeds import embed_documents, get_enterprise_documents

    config = _setup()

    parser = argparse.ArgumentParser(description="Index the enterprise seed documents")
    parser.add_argument(
        "--create-index",
        action="store_true",
        help="Create the index with its mappings first (no-op if it exists)",
    )
    args = parser.parse_args()

    print("=" * 60)
    print(f"INGEST -> {config.store.index} ({config.mode} mode)")
    print("=" * 60)
    if config.use_mock:
        print("  Note: mock mode indexes into an in-memory store")

    store = get_document_store(use_memory=config.use_mock, config=config.store)
    embeddings = get_embedding_provider(
        use_mock=config.use_mock,
        model=config.model.embedding_model,
        dimensions=config.model.dimensions,
        api_key=config.model.api_key or None,
        timeout=config.model.timeout,
        max_retries=config.model.max_retries,
    )

    try:
        if args.create_index:
            created = store.create_index(config.store.index, embeddings.dimensions)
            print(f"  Index {'created' if created else 'already exists'}")
        documents = embed_documents(get_enterprise_documents(), embeddings)
        result = store.bulk_index(config.store.index, documents)
    except (GatewayError, ApiError, TransportError, OpenAIError) as e:
        print(f"\nIngest failed: {e}")
        return 1

    print(f"\nIndexed: {result.indexed}/{len(documents)}")
    for error in result.errors:
        print(f"  Error: {error}")

    if result.errors or not result.indexed:
        print("\n>>> INGEST: FAILED <<<")
        return 1
    print("\n>>> INGEST: OK <<<")
    return 0


def run_search_cli() -> int:
    """Run one search and print the ranked results."""
    from rag_gateway.api import serialize_search
    from rag_gateway.gateway import build_gateway
    from rag_gateway.schemas.requests import SearchRequest

    config = _setup()

    parser = argparse.ArgumentParser(description="Search the document store")
    parser.add_argument("query", help="Search query")
    parser.add_argument("--top-k", type=int, default=5, help="Results to return")
    parser.add_argument("--rerank", action="store_true", help="Rerank with the model")
    parser.add_argument("--lexical", action="store_true", help="Skip the vector channel")
    parser.add_argument("--category", action="append", default=[], help="Category filter")
    parser.add_argument("--department", action="append", default=[], help="Department filter")
    parser.add_argument("--tag", action="append", default=[], help="Tag filter")
    parser.add_argument("--json", action="store_true", help="Print the raw response")
    args = parser.parse_args()

    try:
        request = SearchRequest.model_validate({
            "query": args.query,
            "topK": args.top_k,
            "filters": {
                "category": args.category,
                "department": args.department,
                "tags": args.tag,
            },
            "options": {
                "enableReranking": args.rerank,
                "useHybrid": not args.lexical,
            },
        })
    except ValueError as e:
        print(f"Invalid search: {e}")
        return 1

    try:
        result = build_gateway(config).search(request)
    except GatewayError as e:
        print(f"Error: {e}")
        return 1

    if args.json:
        print(json.dumps(serialize_search(result), indent=2, default=str))
        return 0

    print(f"{result.total_hits} hits ({result.search_type}"
          f"{', reranked' if result.used_reranking else ''}, {result.took_ms:.0f}ms)")
    for warning in result.warnings:
        print(f"  Warning: {warning}")
    for i, candidate in enumerate(result.results, start=1):
        doc = candidate.result.document
        print(f"  {i}. [{candidate.combined_score:.2f}] {doc.get('title', candidate.id)}")
        print(f"     {doc.get('category', '')} | {doc.get('author', '')} | {candidate.id}")
    return 0


def run_health_cli() -> int:
    """Check that the document store answers."""
    from rag_gateway.gateway import build_gateway

    config = _setup()
    status = build_gateway(config, seed=False).health()

    print(f"Mode: {status['mode']}")
    print(f"Document store: {'ok' if status['document_store'] else 'UNAVAILABLE'}")
    return 0 if status["document_store"] else 1


def main() -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        rag-gateway serve    # Serve the HTTP tools
        rag-gateway ingest   # Index the seed corpus
        rag-gateway search   # One-off search
        rag-gateway health   # Store connectivity check
    """
    parser = argparse.ArgumentParser(
        description="Hybrid retrieval and citation-grounding gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  serve       Serve /tool/* endpoints, /health and /metrics
  ingest      Index the enterprise seed corpus
  search      Run one search and print the results
  health      Check document store connectivity

Examples:
  rag-gateway serve --port 8080
  rag-gateway ingest --create-index
  rag-gateway search "security best practices" --top-k 3 --rerank
        """,
    )

    parser.add_argument(
        "command",
        choices=["serve", "ingest", "search", "health"],
        help="Command to run",
    )

    # Parse just the command first
    args, remaining = parser.parse_known_args()

    commands = {
        "serve": run_serve_cli,
        "ingest": run_ingest_cli,
        "search": run_search_cli,
        "health": run_health_cli,
    }

    # Re-inject remaining args for the subcommand
    sys.argv = [sys.argv[0]] + remaining

    try:
        return commands[args.command]()
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
