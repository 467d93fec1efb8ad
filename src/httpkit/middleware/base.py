"""
=============================================================================
MIDDLEWARE CONTRACT AND PIPELINE
=============================================================================

A middleware unit is anything with

    process(request, next) -> response

where ``next`` is ONE callable standing for "the rest of the pipeline".
A unit never sees the list of middleware it sits in, only its successor.

=============================================================================
WHAT A UNIT MAY DO WITH next
=============================================================================

    ┌──────────────────┬────────────────────────────────────────────────┐
    │ call it once     │ normal passthrough (almost every unit)         │
    │ not call it      │ short-circuit: cached hit, CORS preflight,     │
    │                  │ rejected request                                │
    │ call it again    │ retry (allowed, none of the built-ins do)      │
    │ raise instead    │ tagged failure (HTTPException) unwinds to the  │
    │                  │ Server, which turns it into a response         │
    └──────────────────┴────────────────────────────────────────────────┘

Before calling ``next`` a unit may hand on a DIFFERENT request (e.g.
``request.with_attribute("session", s)``); after it returns the unit may
hand back a different response (e.g. ``response.with_header(...)``).

=============================================================================
PIPELINE COMPOSITION
=============================================================================

    pipeline.add(A).add(B).add(C)
    chain = pipeline.wrap(H)

        next := H
        next := lambda r: C.process(r, next)      # walk in REVERSE
        next := lambda r: B.process(r, next)
        next := lambda r: A.process(r, next)

    chain(request):

        A before ─► B before ─► C before ─► H
                                             │
        A after  ◄─ B after  ◄─ C after  ◄───┘

N units + 1 handler = N+1 frames, entered 0..N and left N..0. If B
short-circuits, C and H never run but A's "after" still sees B's response.

No units registered: ``wrap(H)`` is ``H`` itself.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional
import logging

from ..http.request import Request
from ..http.response import Response


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================
#
# Handler is both the terminal handler's signature and the signature of
# the ``next`` continuation each middleware receives.
#
# =============================================================================

Handler = Callable[[Request], Response]
NextHandler = Handler


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Subclasses implement ``process``. Instances are also callable as
    ``mw(request, next)``, so a middleware and a plain
    ``(request, next)`` function can be used interchangeably.

        class TimingHeader(Middleware):
            def process(self, request: Request, next: NextHandler) -> Response:
                started = time.perf_counter()
                response = next(request)
                elapsed = time.perf_counter() - started
                return response.with_header("X-Response-Time", f"{elapsed:.3f}")

    Middleware holds only its own configuration, never per-request state
    or its position in a pipeline.
    """

    @abstractmethod
    def process(self, request: Request, next: NextHandler) -> Response:
        """
        Handle ``request``, usually by calling ``next(request)``.

        Args:
            request: The request as handed over by the previous layer
            next: The rest of the pipeline

        Returns:
            A response (from ``next`` or short-circuited)

        Raises:
            HTTPException: To end the request with a specific status.
        """

    def __call__(self, request: Request, next: NextHandler) -> Response:
        return self.process(request, next)

    @property
    def name(self) -> str:
        """Middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    An ordered list of middleware that composes into one handler.

    Insertion order is execution order: the first unit added is the
    outermost, so it runs first on the way in and last on the way out.

        pipeline = MiddlewarePipeline()
        pipeline.use(SecurityHeadersMiddleware(), CORSMiddleware())
        response = pipeline.process(request, handler)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append a unit. Returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Append several units at once, in the order given."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: Handler) -> Handler:
        """
        Compose every unit around ``handler`` into a single callable.

        Walks the units in reverse so the first one registered ends up
        outermost. Each unit captures its own successor; nothing here
        depends on list positions once the chain is built.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)

        logger.debug(f"Composed pipeline of {len(self._middleware)} middleware")
        return current

    def process(self, request: Request, handler: Handler) -> Response:
        """Build the chain around ``handler`` and run it with ``request``."""
        return self.wrap(handler)(request)

    def _create_wrapped_handler(self, middleware: Middleware, next_handler: NextHandler) -> Handler:
        # Closure over this unit and its successor. Binding both as
        # arguments keeps each frame's successor fixed even though the
        # loop in wrap() rebinds ``current``.
        def wrapped(request: Request) -> Response:
            return middleware.process(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(list(self._middleware))


# =============================================================================
# FUNCTION MIDDLEWARE
# =============================================================================
#
# A quick one-off middleware without writing a class.
#
# =============================================================================

MiddlewareFunc = Callable[[Request, NextHandler], Response]


class FunctionMiddleware(Middleware):
    """
    Wraps a plain ``(request, next) -> response`` function.

        def add_header(request, next):
            return next(request).with_header("X-Custom", "value")

        pipeline.add(FunctionMiddleware(add_header))
    """

    def __init__(self, func: MiddlewareFunc, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    def process(self, request: Request, next: NextHandler) -> Response:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: MiddlewareFunc) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware.

        @function_middleware
        def powered_by(request, next):
            return next(request).with_header("X-Powered-By", "httpkit")

        server.add_middleware(powered_by)
    """
    return FunctionMiddleware(func)
