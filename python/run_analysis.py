#!/usr/bin/env python3
"""
Command-line entry point for the Cert News Risk Analysis System

Usage:
    python run_analysis.py escalate [--keyword K ...]
    python run_analysis.py reclassify SOURCE
    python run_analysis.py recompute-stats
    python run_analysis.py keywords-show
    python run_analysis.py keywords-save K [K ...]
    python run_analysis.py keywords-migrate K [K ...]

Prints the operation result as JSON. Exit code is 0 on success, 1 otherwise.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from config_manager import ConfigManager, ConfigurationError
from logging_setup import configure_logging
from newsrisk.analysis_service import NewsAnalysisService
from newsrisk.connection import DatabaseSessionProvider, DatabaseSettings
from newsrisk.monitoring import configure_monitoring

logger = logging.getLogger(__name__)

DATABASE_COMMANDS = ("escalate", "reclassify", "recompute-stats")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cert news keyword risk analysis")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--init-schema", action="store_true", help="Create missing database tables first")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    escalate = subparsers.add_parser("escalate", help="Escalate matching medium-risk records to high risk")
    escalate.add_argument("--keyword", "-k", action="append", dest="keywords",
                          help="Keyword to use instead of the file/catalog list (repeatable)")

    reclassify = subparsers.add_parser("reclassify", help="Recompute relatedness for one data source")
    reclassify.add_argument("source", help="Data source name")

    subparsers.add_parser("recompute-stats", help="Rebuild today's country risk stats")
    subparsers.add_parser("keywords-show", help="Show the keyword file contents")

    save = subparsers.add_parser("keywords-save", help="Overwrite the keyword file")
    save.add_argument("keywords", nargs="+")

    migrate = subparsers.add_parser("keywords-migrate", help="Import an exported keyword list into the keyword file")
    migrate.add_argument("keywords", nargs="+")

    return parser


def run_command(service: NewsAnalysisService, args: argparse.Namespace) -> Dict[str, Any]:
    """Dispatch one parsed command to the service and return its result as a dict."""
    if args.command == "escalate":
        return service.escalate_medium_risk(args.keywords).to_dict()
    if args.command == "reclassify":
        return service.reclassify_by_source(args.source).to_dict()
    if args.command == "recompute-stats":
        return service.recompute_today_aggregates().to_dict()
    if args.command == "keywords-show":
        return service.get_keyword_info().to_dict()
    if args.command == "keywords-save":
        saved = service.save_keywords(args.keywords)
        return {"success": saved, "sourcePath": str(service.file_source.path)}
    if args.command == "keywords-migrate":
        return service.migrate_keywords(args.keywords).to_dict()
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ConfigManager(args.config)
    except ConfigurationError as e:
        print(json.dumps({"success": False, "error": str(e)}, ensure_ascii=False))
        return 1

    configure_logging(config.logging, level="DEBUG" if args.verbose else None)
    configure_monitoring(
        slow_query_threshold_ms=config.monitoring.slow_query_threshold_ms,
        warning_threshold_ms=config.monitoring.warning_threshold_ms
    )

    provider = DatabaseSessionProvider(settings=DatabaseSettings.from_config(config.database))
    try:
        if args.command in DATABASE_COMMANDS or args.init_schema:
            provider.init()
        if args.init_schema:
            provider.create_tables()

        service = NewsAnalysisService(provider, config)
        result = run_command(service, args)
    except Exception as e:
        logger.error(f"Command '{args.command}' failed: {e}")
        result = {"success": False, "error": str(e)}
    finally:
        provider.close()

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0 if result.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
