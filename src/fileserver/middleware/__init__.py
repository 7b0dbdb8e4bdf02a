"""
Middleware wrapped around the dispatcher (Chain of Responsibility).

    pipeline = MiddlewarePipeline().add(LoggingMiddleware(log_format="json"))
    handle = pipeline.wrap(dispatcher.dispatch)
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "LoggingMiddleware",
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "RequestLog",
]
