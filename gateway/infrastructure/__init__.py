"""
Infrastructure layer package.

Adapters implementing the domain ports: Firebase SDK adapters,
in-memory adapters, and the change fan-out.
"""
