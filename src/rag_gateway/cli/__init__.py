"""
CLI module - unified command-line interface.

Provides entry points for:
- Serving the HTTP tools
- Seeding the document store
- One-off searches and health checks
"""

from rag_gateway.cli.commands import (
    main,
    configure_logging,
    run_serve_cli,
    run_ingest_cli,
    run_search_cli,
    run_health_cli,
)

__all__ = [
    "main",
    "configure_logging",
    "run_serve_cli",
    "run_ingest_cli",
    "run_search_cli",
    "run_health_cli",
]
