"""
Template renderer.

Renders notification bodies with Jinja2. Templates are looked up in
TEMPLATES_DIR first (when configured), then in the templates shipped with
this package. Template "expense_created" is the file expense_created.html.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping

import jinja2

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".html"


class RenderError(Exception):
    """A template could not be rendered."""


class TemplateNotFoundError(RenderError):
    """No template with the requested name."""

    def __init__(self, template_name: str):
        super().__init__(f"template {template_name} not found")
        self.template_name = template_name


class TemplateRenderer(ABC):
    """Renders a named template with data into a notification body."""

    @abstractmethod
    def render(self, template_name: str, data: Mapping[str, Any]) -> str:
        """
        Render a template.

        Raises:
            TemplateNotFoundError: unknown template name
            RenderError: the template failed to render
        """
        ...


class Jinja2TemplateRenderer(TemplateRenderer):
    """Jinja2 renderer with HTML autoescaping."""

    def __init__(self, templates_dir: str | None = None):
        loaders: list[jinja2.BaseLoader] = []
        if templates_dir:
            loaders.append(jinja2.FileSystemLoader(templates_dir))
        loaders.append(jinja2.PackageLoader("notifications", "templates"))

        self.env = jinja2.Environment(
            loader=jinja2.ChoiceLoader(loaders),
            autoescape=jinja2.select_autoescape(["html"]),
            undefined=jinja2.ChainableUndefined,
        )

    def render(self, template_name: str, data: Mapping[str, Any]) -> str:
        try:
            template = self.env.get_template(f"{template_name}{TEMPLATE_SUFFIX}")
        except jinja2.TemplateNotFound as e:
            raise TemplateNotFoundError(template_name) from e

        try:
            return template.render(**data)
        except jinja2.TemplateError as e:
            raise RenderError(f"Failed to render template {template_name}: {e}") from e
