"""Jinja2 rendering of chart and Terraform module directories."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Any

import structlog
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from deploy_engine.domain.errors import CommandError
from deploy_engine.domain.ports.services import TemplateRenderer


logger = structlog.get_logger(__name__)

# Only files carrying this marker are rendered; Helm templates use the same
# delimiters as Jinja2 and are copied untouched.
TEMPLATE_MARKER = ".j2"


def rendered_name(name: str) -> str:
    """``values.j2.yaml`` -> ``values.yaml``, ``main.tf.j2`` -> ``main.tf``."""
    if name.endswith(TEMPLATE_MARKER):
        return name[: -len(TEMPLATE_MARKER)]
    return name.replace(f"{TEMPLATE_MARKER}.", ".", 1)


def is_template(name: str) -> bool:
    return name.endswith(TEMPLATE_MARKER) or f"{TEMPLATE_MARKER}." in name


def render_directory(source_dir: str, target_dir: str, context: dict[str, Any]) -> list[str]:
    """Render ``source_dir`` into ``target_dir``; returns the written paths.

    Output depends only on the inputs, so rendering the same directory twice
    with the same context produces identical files.
    """
    source = Path(source_dir)
    target = Path(target_dir)
    if not source.is_dir():
        raise CommandError(f"Template directory `{source_dir}` does not exist.")

    env = Environment(
        loader=FileSystemLoader(str(source)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )

    written: list[str] = []
    for path in sorted(source.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(source)
        destination = target / relative.parent / rendered_name(relative.name)
        destination.parent.mkdir(parents=True, exist_ok=True)

        if is_template(relative.name):
            try:
                content = env.get_template(relative.as_posix()).render(**context)
            except TemplateError as e:
                raise CommandError(
                    f"Cannot render template `{relative.as_posix()}`.", str(e)
                ) from e
            destination.write_text(content, encoding="utf-8")
        else:
            shutil.copy2(path, destination)
        written.append(str(destination))
    return written


class Jinja2DirectoryRenderer(TemplateRenderer):
    """Renders template directories off the event loop."""

    async def render(self, source_dir: str, target_dir: str, context: dict[str, Any]) -> None:
        try:
            written = await asyncio.to_thread(render_directory, source_dir, target_dir, context)
        except OSError as e:
            raise CommandError(
                f"Cannot copy files from `{source_dir}` to `{target_dir}`.", str(e)
            ) from e
        logger.debug("templates_rendered", source_dir=source_dir, target_dir=target_dir, files=len(written))
