"""{{key}} placeholder substitution for the send-template route"""

from typing import Any, Optional


def _as_text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_template(template: str, data: Optional[dict[str, Any]] = None) -> str:
    """Replace every ``{{key}}`` occurrence; unknown placeholders are left untouched"""
    rendered = template
    for key, value in (data or {}).items():
        rendered = rendered.replace("{{" + key + "}}", _as_text(value))
    return rendered
