"""
QueryLinker services.

This package contains:
- embeddings: hash, OpenAI and local sentence-transformer embedders
- ingestion: text cleaning and chunking of synced solutions
- search: per-system adapters, live connectors and the search orchestrator
- auth: Google sign-in, password hashing, session and reset tokens
- mail: e-mail transports, dispatch service and templates
"""
