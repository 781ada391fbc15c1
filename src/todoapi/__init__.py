"""
=============================================================================
TODO API
=============================================================================

A JSON REST API for todo items and user accounts, served by a threaded
HTTP/1.1 server over a SQLite database.

    from todoapi import AppConfig, ApiServer, create_app

    app = create_app(AppConfig(port=8080, db_path="todo.db"))
    ApiServer(app).run()

Layers, outermost first:

    core/        sockets, connections, worker pool
    server.py    bytes ⇄ Request/Response, network-level errors
    http/        request parsing, router, dispatcher, responses
    middleware/  CORS, request log, rate limit, auth, validation
    controllers/ request → service call → response
    services/    domain rules, ServiceResult values
    storage/     SQLite schema and repositories
    security/    JWT tokens, password hashing

=============================================================================
"""

__version__ = "1.0.0"

from .app import Application, create_app
from .config import AppConfig
from .server import ApiServer

__all__ = ["ApiServer", "AppConfig", "Application", "create_app", "__version__"]
