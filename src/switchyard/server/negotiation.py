"""Content negotiation — maps handler outcomes to Response objects.

isinstance-based dispatch, no magic. Outcomes other than a ``Response``
are applied on top of the response the handler (or middleware) was
given, so headers and cookies set further out survive.
"""

import json as json_module
from typing import Any

from kida import Environment

from switchyard.errors import ConfigurationError
from switchyard.http.response import Redirect, Response
from switchyard.templating.integration import render_template
from switchyard.templating.returns import Template

HTML = "text/html; charset=utf-8"


def negotiate(value: Any, response: Response, *, kida_env: Environment | None = None) -> Response:
    """Convert a handler or middleware outcome to a Response.

    Dispatch order:

    1. ``None``             -> *response* unchanged
    2. ``Response``         -> pass through
    3. ``Redirect``         -> status + ``Location``, empty body
    4. ``Template``         -> render via kida, text/html
    5. ``str``              -> text/html
    6. ``bytes``            -> application/octet-stream
    7. ``dict`` / ``list``  -> application/json
    8. ``(value, int)``     -> negotiate value, override status
    9. ``(value, int, dict)`` -> negotiate value, override status + headers
    """
    match value:
        case None:
            return response
        case Response():
            return value
        case Redirect():
            return response.redirect(value.url, value.status).with_headers(dict(value.headers))
        case Template():
            if kida_env is None:
                msg = (
                    "Template return type requires kida integration. "
                    "Ensure a template_dir is configured in AppConfig."
                )
                raise ConfigurationError(msg)
            return response.with_body(render_template(kida_env, value)).with_content_type(HTML)
        case str():
            return response.with_body(value).with_content_type(HTML)
        case bytes():
            return response.with_body(value).with_content_type("application/octet-stream")
        case dict() | list():
            return response.with_body(json_module.dumps(value, default=str)).with_content_type(
                "application/json"
            )
        case (inner, int() as status):
            return negotiate(inner, response, kida_env=kida_env).with_status(status)
        case (inner, int() as status, dict() as headers):
            return negotiate(inner, response, kida_env=kida_env).with_status(status).with_headers(headers)
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                "Return None, str, bytes, dict, list, Template, Response, or Redirect."
            )
            raise TypeError(msg)
