#!/usr/bin/env python3
"""
Run an enhanced search against a running QueryLinker API.

Example:
    python -m querylinker_cli.search "database connection timeout" --systems JIRA GITHUB
    python -m querylinker_cli.search "vpn drops" --max-results 5 --keyword-only
"""

from __future__ import annotations

import argparse
import logging

import requests

from querylinker_core.logging_utils import setup_logging
from querylinker_cli.client import QueryLinkerClient

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Search connected systems for related solutions.")
    parser.add_argument("query", help="Incident description or search text.")
    parser.add_argument("--systems", nargs="*", default=[], help="Systems to search (default: all).")
    parser.add_argument("--max-results", type=int, default=10)
    parser.add_argument("--keyword-only", action="store_true", help="Skip semantic ranking.")
    parser.add_argument("--api-url", default="http://localhost:8000", help="Base URL of the QueryLinker API.")
    args = parser.parse_args()

    setup_logging()
    client = QueryLinkerClient(args.api_url)
    try:
        results = client.enhanced_search(
            args.query, args.systems, max_results=args.max_results, use_semantic=not args.keyword_only,
        )
    except requests.RequestException as e:
        logger.error("Search request failed: %s", e)
        raise SystemExit(1)

    if not results:
        print("No results.")
        return
    for i, r in enumerate(results, 1):
        score = f"{r.score:.3f}" if r.score is not None else "  -  "
        print(f"{i:2d}. [{score}] {r.system:10s} {r.title}")
        if r.external_url:
            print(f"      {r.external_url}")
        if r.snippet:
            print(f"      {r.snippet[:160]}")


if __name__ == "__main__":
    main()
