"""App-wide settings.

One frozen dataclass read once, when the app freezes. Settings that
belong to a single component (CSRF, sessions, CORS, throttling) sit in
that component's own frozen config instead.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Settings for ``App``. Every field has a default::

        App(AppConfig(secret_key=os.environ["SECRET_KEY"], template_dir="views"))
    """

    debug: bool = False

    # Signs the session cookie; empty means in-memory sessions
    secret_key: str = ""

    # kida environment, built only when template_dir exists
    template_dir: str | Path = "templates"
    autoescape: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True

    # Tried in order for unmatched requests
    not_found_templates: tuple[str, ...] = ("errors/404.html", "error/404.html")

    session_cookie: str = "switchyard_session"
    session_max_age: int = 86400

    # Larger declared bodies are refused with 413
    max_content_length: int = 16 * 1024 * 1024
