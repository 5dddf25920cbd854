"""
QueryLinker API - FastAPI REST API for cross-system solution search.

This package contains:
- FastAPI application (main.py): search, systems, solution ingest, health
- Account endpoints (auth.py): signup/login, password reset, Google sign-in
- E-mail endpoints (mail.py): test send and transport status
- CRUD operations (crud.py)
- Service wiring (dependencies.py)
"""
