"""
staybook.observability

Structured logging configuration and request context propagation.
"""
