"""
Interfaces layer package.

FastAPI routers, request/response schemas and dependency wiring.
Routes delegate to use cases; no business logic here.
"""
