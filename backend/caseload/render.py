from __future__ import annotations
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape


_env = Environment(
	loader=FileSystemLoader(str(Path(__file__).resolve().parent / "templates")),
	autoescape=select_autoescape(["html"]),
	trim_blocks=True,
	lstrip_blocks=True,
)


def render_progress_report(report_data: Dict[str, Any], overall_summary: str) -> str:
	"""Self-contained printable HTML for one student's quarterly progress report."""
	template = _env.get_template("progress_report.html")
	return template.render(report=report_data, overall_summary=(overall_summary or "").strip())
