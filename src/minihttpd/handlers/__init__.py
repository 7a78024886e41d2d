"""
=============================================================================
HANDLERS MODULE
=============================================================================

The fixed endpoints served by minihttpd.

    ┌────────┬──────────────────┬──────────────────────────────────────────┐
    │ Method │ Target           │ Handler                                  │
    ├────────┼──────────────────┼──────────────────────────────────────────┤
    │ GET    │ /                │ basic.index                              │
    │ GET    │ /echo/<text>     │ EchoHandler.handle                       │
    │ GET    │ /user-agent      │ basic.user_agent                         │
    │ GET    │ /files/<name>    │ FileHandler.download                     │
    │ POST   │ /files/<name>    │ FileHandler.upload                       │
    └────────┴──────────────────┴──────────────────────────────────────────┘

Anything else is answered 404 by the Router.

=============================================================================
"""

from .basic import index, user_agent
from .echo import EchoHandler
from .files import FileHandler

__all__ = [
    "index",
    "user_agent",
    "EchoHandler",
    "FileHandler",
]
