"""
=============================================================================
CORS MIDDLEWARE
=============================================================================

Lets the browser front end (served from another origin, by default
http://localhost:8000) call the API.

    ┌───────────────────────────────────────────────────────────────────┐
    │  OPTIONS <any path>             (browser pre-flight)              │
    │     └─► 204, empty body, CORS headers. The chain stops HERE:      │
    │         logging, rate limiting and auth never see it.             │
    │                                                                   │
    │  GET /api/v1/todos                                                │
    │     └─► next(request) → response + CORS headers                   │
    │         (also added to 401 / 404 / 429 responses coming back      │
    │          from inner middleware, so the browser can read them)     │
    └───────────────────────────────────────────────────────────────────┘

Headers added to every response:

    Access-Control-Allow-Origin:      <configured origin>
    Access-Control-Allow-Methods:     GET, POST, PUT, DELETE, OPTIONS
    Access-Control-Allow-Headers:     Content-Type, Authorization
    Access-Control-Allow-Credentials: true

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .base import Middleware, NextHandler
from ..http.request import Request
from ..http.response import Response, no_content


@dataclass
class CORSConfig:
    """
    CORS policy.

    Attributes:
        allow_origin: Value of Access-Control-Allow-Origin.
        allow_methods: Methods advertised to the browser.
        allow_headers: Request headers the browser may send.
        allow_credentials: Send Access-Control-Allow-Credentials: true.
    """

    allow_origin: str = "http://localhost:8000"
    allow_methods: List[str] = field(
        default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )
    allow_headers: List[str] = field(
        default_factory=lambda: ["Content-Type", "Authorization"]
    )
    allow_credentials: bool = True

    def headers(self) -> Dict[str, str]:
        headers = {
            "Access-Control-Allow-Origin": self.allow_origin,
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
        }
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers


class CorsMiddleware(Middleware):
    """
    Answers pre-flight requests and decorates every response with CORS headers.

        CorsMiddleware()                                  # localhost:8000
        CorsMiddleware(CORSConfig(allow_origin="https://todo.example.com"))
    """

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()
        self._headers = self.config.headers()

    def handle(self, request: Request, next: NextHandler) -> Response:
        if request.method == "OPTIONS":
            return no_content().with_headers(self._headers)

        response = next(request)
        return response.with_headers(self._headers)

    @property
    def name(self) -> str:
        return "CORS"
