"""
Shared module package.

Contains cross-cutting concerns used across bounded contexts:
- Fault capture and error normalization
- Security middleware
- Rate limiting
- Logging configuration
"""
