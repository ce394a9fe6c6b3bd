"""
Application layer package.

Use cases coordinate domain entities and ports to fulfill
gateway operations. No framework or infrastructure imports allowed.
"""
