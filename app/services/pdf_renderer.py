# app/services/pdf_renderer.py

from pathlib import Path
from jinja2 import Environment, FileSystemLoader, select_autoescape
import os
KEEP_HTML_DEBUG = os.getenv("CLEARCAUSE_KEEP_HTML_DEBUG", "0").lower() in {"1", "true", "yes"}


APP_DIR = Path(__file__).resolve().parents[1]
TEMPLATES_DIR = APP_DIR / "templates"
OUT_DIR = APP_DIR.parent / "var" / "generated"


def _env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )


def render_html(template_rel_path: str, context: dict) -> str:
    return _env().get_template(template_rel_path).render(**context)


# PDF rendered in memory (streamed back, never stored)
def render_pdf_bytes(template_rel_path: str, context: dict, debug_name: str | None = None) -> bytes:
    # Late WeasyPrint import so the app starts even without its system libs
    from weasyprint import HTML

    html_str = render_html(template_rel_path, context)

    # Optional debug: keep the rendered HTML (off by default)
    if KEEP_HTML_DEBUG and debug_name:
        OUT_DIR.mkdir(parents=True, exist_ok=True)
        with open(OUT_DIR / f"{debug_name}.html", "w", encoding="utf-8") as f:
            f.write(html_str)

    # write_pdf() without a target returns bytes
    return HTML(string=html_str, base_url=str(TEMPLATES_DIR)).write_pdf()
