"""
Domain layer package.

Entities, port interfaces and backend errors. No framework imports
and no IO operations.
"""
