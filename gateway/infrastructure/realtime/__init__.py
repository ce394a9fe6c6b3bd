"""
Real-time delivery of document change events to WebSocket subscribers.
"""
