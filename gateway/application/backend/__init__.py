"""
Application layer for the backend bounded context.

Each use case wraps one gateway operation: it calls a backend port and,
for document writes, publishes a ChangeEvent once the write is confirmed.
"""
