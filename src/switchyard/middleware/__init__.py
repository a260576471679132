"""Middleware — Protocol-based, no inheritance required.

A middleware is any object with:
    handle(request: Request, response: Response, next: Next) -> outcome

Route definitions refer to middleware by alias (``"auth"``, ``"cors"``,
``"throttle"``...), import string, class, or instance; the
``MiddlewareRegistry`` resolves them.

Built-in middleware:
    CORSMiddleware -- Cross-Origin Resource Sharing
    ThrottleMiddleware -- Fixed-window per-client request limit
"""

from switchyard.middleware.builtin import CORSConfig, CORSMiddleware
from switchyard.middleware.pipeline import build_pipeline
from switchyard.middleware.protocol import Middleware, Next
from switchyard.middleware.registry import DEFAULT_ALIASES, MiddlewareRegistry
from switchyard.middleware.throttle import ThrottleConfig, ThrottleMiddleware

__all__ = [
    "DEFAULT_ALIASES",
    "CORSConfig",
    "CORSMiddleware",
    "Middleware",
    "MiddlewareRegistry",
    "Next",
    "ThrottleConfig",
    "ThrottleMiddleware",
    "build_pipeline",
]
