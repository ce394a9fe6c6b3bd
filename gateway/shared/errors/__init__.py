"""
Shared error handling package.

Centralizes error-to-HTTP mapping so that every upstream failure is
captured once as a `Fault`, normalized into a `NormalizedError`, and
written to the client as the uniform failure envelope.
"""
