"""
=============================================================================
EXAMPLE: JSON API BEHIND A MIDDLEWARE PIPELINE
=============================================================================

A small users API served through httpkit's Server under the standard
library's WSGI reference server. It shows:

1. ServerConfig from the environment
2. A middleware pipeline (logging, security headers, CORS, rate
   limiting, caching, sessions)
3. A Controller as the terminal handler
4. Tagged failures (NotFoundException, BadRequestException) becoming
   responses without any try/except in the handler

REQUEST FLOW
────────────

    wsgiref ──► Server.wsgi_app
                    │
                    ▼
    Logging ─► SecurityHeaders ─► CORS ─► RateLimit ─► Session ─► Cache
                    │
                    ▼
    UsersController.handle()

RUN IT
──────

    PYTHONPATH=src python examples/api_server.py

    curl http://127.0.0.1:8080/users
    curl http://127.0.0.1:8080/users?id=1
    curl -X POST http://127.0.0.1:8080/users \\
         -H "Content-Type: application/json" \\
         -d '{"name": "Charlie", "email": "charlie@example.com"}'

=============================================================================
"""

import logging
from wsgiref.simple_server import make_server

from httpkit import (
    BadRequestException,
    Controller,
    MemoryStorage,
    NotFoundException,
    Request,
    Response,
    Server,
    ServerConfig,
    json_response,
)
from httpkit.http import method_not_allowed, no_content
from httpkit.middleware import (
    CacheMiddleware,
    CORSMiddleware,
    LoggingMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
    SessionMiddleware,
)


logger = logging.getLogger("api_server")


class UsersController(Controller):
    """
    GET     /users          list users
    GET     /users?id=N     one user
    POST    /users          create from a JSON body
    DELETE  /users?id=N     remove a user
    """

    def __init__(self):
        self.users = {
            1: {"id": 1, "name": "Alice", "email": "alice@example.com"},
            2: {"id": 2, "name": "Bob", "email": "bob@example.com"},
        }
        self.next_id = 3

    def handle(self, request: Request) -> Response:
        if request.path.rstrip("/") != "/users":
            raise NotFoundException(f"No resource at {request.path}")

        request.session.set("requests", request.session.get("requests", 0) + 1)

        if request.is_method("GET"):
            if request.query("id") is not None:
                return json_response(self._find(request))
            return json_response({"users": list(self.users.values()), "count": len(self.users)})

        if request.is_method("POST"):
            return self._create(request)

        if request.is_method("DELETE"):
            del self.users[self._find(request)["id"]]
            return no_content()

        return method_not_allowed(["GET", "POST", "DELETE"])

    def _find(self, request: Request) -> dict:
        try:
            user_id = int(request.query("id"))
        except (TypeError, ValueError):
            raise BadRequestException("id must be an integer")

        user = self.users.get(user_id)
        if user is None:
            raise NotFoundException(f"User {user_id} not found")
        return user

    def _create(self, request: Request) -> Response:
        data = request.json
        if not isinstance(data, dict) or not data.get("name") or not data.get("email"):
            raise BadRequestException("JSON body with 'name' and 'email' is required")

        user = {"id": self.next_id, "name": data["name"], "email": data["email"]}
        self.users[user["id"]] = user
        self.next_id += 1

        return json_response(user, status=201, headers={"Location": f"/users?id={user['id']}"})


def build_server() -> Server:
    storage = MemoryStorage()

    server = Server(ServerConfig.from_env())
    server.configure_logging()
    server.use(
        LoggingMiddleware(skip_paths=["/health"]),
        SecurityHeadersMiddleware({"Strict-Transport-Security": None}),
        CORSMiddleware(),
        RateLimitMiddleware(storage, limit=100, window=60),
        SessionMiddleware(),
        CacheMiddleware(storage, ttl=5),
    )
    return server


def main(host: str = "127.0.0.1", port: int = 8080) -> None:
    server = build_server()
    app = server.wsgi_app(UsersController())

    with make_server(host, port, app) as httpd:
        logger.info(f"Serving on http://{host}:{port}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Shutting down")


if __name__ == "__main__":
    main()
