"""Jinja2 templating for notification bodies.

Templates live in apps/notify/templates/ and receive the notification message
plus a few derived values (see build_context).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import jinja2

TEMPLATES_DIR = Path(__file__).parent / "templates"

logger = logging.getLogger(__name__)

_JINJA_ENV = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=jinja2.select_autoescape(enabled_extensions=("html.j2",), default=False),
    undefined=jinja2.StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)


def build_context(message) -> dict[str, Any]:
    """Template variables for a NotificationMessage."""
    return {
        "message": message,
        "action": message.action,
        "headline": message.headline,
        "emoji": message.emoji,
        "time": message.formatted_time,
        "is_resolution": message.is_resolution,
    }


def render_template(name: str, context: dict[str, Any]) -> str:
    """Render the template file ``name`` with ``context``.

    Raises:
        ValueError: if the template is missing or fails to render.
    """
    try:
        template = _JINJA_ENV.get_template(name)
    except jinja2.TemplateNotFound:
        raise ValueError(f"Template file not found: {name}") from None

    try:
        rendered = template.render(**context)
    except jinja2.TemplateError as e:
        raise ValueError(f"Jinja2 render error in {name}: {e}") from e

    logger.debug("render_template: %s rendered len=%d", name, len(rendered))
    return rendered
