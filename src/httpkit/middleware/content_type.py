"""Forces one Content-Type on every response (JSON APIs, mostly)."""

from .base import Middleware, NextHandler
from ..http.request import Request
from ..http.response import Response


class ContentTypeMiddleware(Middleware):
    """
    Sets (or replaces) Content-Type after the handler has run.

        server.add_middleware(ContentTypeMiddleware())                # application/json
        server.add_middleware(ContentTypeMiddleware("application/xml"))
    """

    def __init__(self, content_type: str = "application/json"):
        self.content_type = content_type

    def process(self, request: Request, next: NextHandler) -> Response:
        return next(request).with_header("Content-Type", self.content_type)
