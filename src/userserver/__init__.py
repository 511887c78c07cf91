"""
=============================================================================
USERSERVER - CRUD over raw HTTP/1.1
=============================================================================

A small HTTP server that stores users in a relational database. The HTTP
layer is written directly on top of TCP sockets; storage goes through
SQLAlchemy.

    GET    /users/<id>      fetch one user
    GET    /users           list all users
    POST   /users           create   {"name": ..., "email": ...}
    PUT    /users?id=<id>   replace  {"name": ..., "email": ...}
    DELETE /users?id=<id>   delete
    GET    /hello           "Hello world"
    GET    /health          database reachability

Connections are served one at a time, one request per connection.

=============================================================================
PACKAGE LAYOUT
=============================================================================

    userserver/
    ├── core/          TCP listener and per-client connection wrapper
    ├── http/          request parser, router, response builder
    ├── db/            users table, engine, repository
    ├── handlers/      /users, /hello and /health endpoints
    ├── middleware/    access logging
    ├── schemas.py     request body validation
    ├── config.py      ServerConfig (env + CLI)
    └── server.py      HTTPServer and create_app()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
