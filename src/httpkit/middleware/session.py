"""
Session middleware.

Loads the visitor's session before the rest of the pipeline runs and
hands it on as a request attribute:

    request ──► Session(store, id from cookie).start()
            ──► next(request.with_attribute("session", session))
            ──► session.save()
            ──► response (+ Set-Cookie when the id is new or was destroyed)

The incoming request object is never modified; layers above this one
keep seeing the request without the attribute.
"""

import logging
from typing import Optional

from .base import Middleware, NextHandler
from ..http.request import Request, SESSION_ATTRIBUTE
from ..http.response import Response
from ..session import MemorySessionStore, Session, SessionOptions, SessionStore


logger = logging.getLogger(__name__)


class SessionMiddleware(Middleware):
    """
    Attaches a started Session to every request.

    Usage:
        server.add_middleware(SessionMiddleware(
            MemorySessionStore(),
            SessionOptions(name="app_session", cookie_secure=True),
        ))

        def dashboard(request):
            user_id = request.session.get("user_id")
            ...
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        options: Optional[SessionOptions] = None,
    ):
        self.store = store or MemorySessionStore()
        self.options = options or SessionOptions()

    def create_session(self, request: Request) -> Session:
        return Session(self.store, self.options, session_id=request.cookie(self.options.name))

    def process(self, request: Request, next: NextHandler) -> Response:
        session = self.create_session(request)
        session.start()

        response = next(request.with_attribute(SESSION_ATTRIBUTE, session))

        session.save()

        cookie = session.cookie()
        if cookie is not None:
            response = response.with_cookie(cookie)

        return response
