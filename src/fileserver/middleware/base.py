"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware wraps the dispatcher with cross-cutting behavior (access
logging today) using the Chain of Responsibility pattern:

    Request ──────────────────────────────────────────────►

    ┌──────────────┐    ┌──────────────┐    ┌──────────────────────┐
    │  Logging MW  │───►│  ... MW      │───►│ Dispatcher.dispatch  │
    └──────┬───────┘    └──────┬───────┘    └──────────┬───────────┘
      [before]            [before]               [handler runs]
      start timer                               ResponseDescriptor
      [after]             [after]                       │
      log status  ◄────── ...  ◄────────────────────────┘

    ◄────────────────────────────────────────────── Response

The innermost callable is Dispatcher.dispatch, which never raises, so
every middleware sees a ResponseDescriptor, including for faults.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List

from ..handlers.base import ResponseDescriptor
from ..http.request import HTTPRequest


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], ResponseDescriptor]


class Middleware(ABC):
    """
    Base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                started = time.time()
                descriptor = next(request)
                descriptor.headers["X-Elapsed"] = f"{time.time() - started:.3f}"
                return descriptor
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> ResponseDescriptor:
        """Process the request, normally by calling next(request)."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware around a final handler.

    First added is outermost:

        pipeline = MiddlewarePipeline().add(LoggingMiddleware())
        handle = pipeline.wrap(dispatcher.dispatch)
        descriptor = handle(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """Build MW1(MW2(...(handler))) from the registered middleware."""
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> ResponseDescriptor:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
