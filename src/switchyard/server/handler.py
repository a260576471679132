"""ASGI handler — translates ASGI scope/messages to switchyard types.

The only component that touches raw ASGI HTTP messages. Converts the
scope to a Request, loads the session, dispatches, maps failures at a
single boundary, saves the session, and sends the Response.
"""

from collections.abc import Callable
from typing import Any

from kida import Environment

from switchyard._internal.asgi import Receive, Scope, Send
from switchyard.dispatch import Dispatcher
from switchyard.errors import HTTPError
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.security.csrf import reset_current_token, set_current_token
from switchyard.server.errors import handle_http_error, handle_internal_error
from switchyard.server.sender import send_response
from switchyard.sessions import SessionBackend, session_scope


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatcher: Dispatcher,
    sessions: SessionBackend,
    error_handlers: dict[int | type, Callable[..., Any]],
    kida_env: Environment | None = None,
    debug: bool = False,
    max_content_length: int | None = None,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    session = sessions.load(request)

    with session_scope(session):
        csrf_reset = set_current_token(dispatcher.csrf.token(session))
        try:
            length = request.content_length
            if max_content_length is not None and length is not None and length > max_content_length:
                raise HTTPError(status=413, detail="Payload Too Large")
            response = await dispatcher.dispatch(request, Response(), session)
        except HTTPError as exc:
            response = await handle_http_error(exc, request, error_handlers, kida_env)
        except Exception as exc:
            response = await handle_internal_error(exc, request, error_handlers, kida_env, debug)
        finally:
            reset_current_token(csrf_reset)

    response = sessions.save(response, session)
    await send_response(response, send, head=request.method == "HEAD")
