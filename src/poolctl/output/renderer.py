from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


def get_templates_dir() -> Path:
    return Path(__file__).parent / "templates"


def create_jinja_env() -> Environment:
    templates_dir = get_templates_dir()
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        # 纯文本模板不转义
        autoescape=select_autoescape(enabled_extensions=("html",)),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    return env


def render_template(template_name: str, context: Dict[str, Any]) -> str:
    env = create_jinja_env()
    template = env.get_template(template_name)
    return template.render(**context)
