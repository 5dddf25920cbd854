"""
QueryLinker CLI - Command-line entrypoints and the HTTP client.

This package contains:
- client.py: QueryLinkerClient for the enhanced-search endpoint
- search.py: search a running API from the terminal
- ingest_solutions.py: load solutions (JSON lines) into the knowledge store
- send_test_email.py: check the configured e-mail transport
"""
