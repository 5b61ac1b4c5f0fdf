"""sightline template rendering.

This module provides Jinja2-based rendering of ticket exports.
Templates produce identical output for identical input.
"""

from sightline.templates.renderer import TicketRenderer, format_datetime

__all__ = ["TicketRenderer", "format_datetime"]
