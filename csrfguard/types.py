"""
Call signatures shared by the guard and the surrounding pipeline.

The guard follows the async middleware signature
``async def __call__(self, request, ctx, next_handler) -> Response``.
Requests and contexts are opaque carriers; only the members below are used.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, MutableMapping, Protocol, Union


class RequestLike(Protocol):
    """What the guard needs from a request object."""

    method: str
    state: MutableMapping[str, Any]


Handler = Callable[[Any, Any], Awaitable[Any]]

# Failure handlers receive the token-augmented request, the ctx and the
# wrapped handler. They may be plain functions or coroutines.
FailureHandler = Callable[[Any, Any, Handler], Union[Any, Awaitable[Any]]]

ParsedBody = Dict[str, Any]
