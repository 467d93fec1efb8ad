"""
Controllers: class-based terminal handlers.

A terminal handler is any ``(request) -> Response`` callable. Subclass
Controller when a handler needs state or helpers of its own:

    class UserController(Controller):
        def __init__(self, repository):
            self.repository = repository

        def handle(self, request: Request) -> Response:
            user = self.repository.find(request.query("id"))
            if user is None:
                raise NotFoundException("User not found")
            return json_response(user)

    server.handle(request, UserController(repository))
"""

from abc import ABC, abstractmethod

from .http.request import Request
from .http.response import Response


class Controller(ABC):

    @abstractmethod
    def handle(self, request: Request) -> Response:
        """Produce the response for ``request``."""

    def __call__(self, request: Request) -> Response:
        return self.handle(request)
