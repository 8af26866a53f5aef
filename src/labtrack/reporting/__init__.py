"""HTML export of patient timelines."""

from __future__ import annotations

from labtrack.reporting.html import render_timeline, render_timeline_html


__all__ = ["render_timeline", "render_timeline_html"]
