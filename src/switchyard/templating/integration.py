"""Kida environment setup.

Creates a kida Environment from the AppConfig and binds the router's
template globals. The environment is created once, when the app
freezes, and shared by every request.
"""

from collections.abc import Mapping
from typing import Any

from kida import Environment, FileSystemLoader

from switchyard.config import AppConfig
from switchyard.security.csrf import csrf_field, csrf_meta, csrf_token
from switchyard.templating.returns import Template

BUILTIN_GLOBALS: dict[str, Any] = {
    "csrf_field": csrf_field,
    "csrf_meta": csrf_meta,
    "csrf_token": csrf_token,
}


def bind_globals(env: Environment, globals_: Mapping[str, Any]) -> Environment:
    """Expose the CSRF helpers plus *globals_* (``route``, app globals) to templates."""
    for name, value in {**BUILTIN_GLOBALS, **globals_}.items():
        env.add_global(name, value)
    return env


def create_environment(config: AppConfig, globals_: Mapping[str, Any]) -> Environment:
    """Build the app's kida Environment from ``config.template_dir``."""
    loader = FileSystemLoader(str(config.template_dir))
    env = Environment(
        loader=loader,
        autoescape=config.autoescape,
        auto_reload=config.debug,
        trim_blocks=config.trim_blocks,
        lstrip_blocks=config.lstrip_blocks,
    )
    return bind_globals(env, globals_)


def render_template(env: Environment, tpl: Template) -> str:
    return env.get_template(tpl.name).render(tpl.context)
