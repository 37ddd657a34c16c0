# =============================================================================
# portico/views.py - Template Rendering
# =============================================================================
# Templates live in <root>/<views> and are addressed by name without their
# extension: render(request, "users/index") looks up users/index.html when
# view_engine is "html". Jinja2 renders them unless a custom `engine`
# callable is configured.
# =============================================================================

import inspect
from collections.abc import Callable
from pathlib import Path
from typing import Any

from fastapi.templating import Jinja2Templates
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response

from portico.exceptions import ConfigurationError


class Views:
    """
    The view engine registered for one app.

    Args:
        directory: Template directory
        extension: File extension templates are looked up with
        engine: Optional ``engine(template_path, context) -> str`` (sync or
            async) used instead of Jinja2
    """

    def __init__(self, directory: Path, extension: str = "html", engine: Callable[..., Any] | None = None):
        self.directory = Path(directory)
        self.extension = extension.lstrip(".")
        self.engine = engine
        self.templates = None if engine else Jinja2Templates(directory=str(self.directory))

    def template_name(self, name: str) -> str:
        """Add the engine extension to names given without one."""
        if Path(name).suffix:
            return name
        return f"{name}.{self.extension}"

    async def render(
        self,
        request: Request,
        name: str,
        context: dict[str, Any] | None = None,
        status_code: int = 200,
    ) -> Response:
        template = self.template_name(name)
        context = dict(context or {})

        if self.engine is None:
            return self.templates.TemplateResponse(request, template, context, status_code=status_code)

        context.setdefault("request", request)
        html = self.engine(self.directory / template, context)
        if inspect.isawaitable(html):
            html = await html
        return HTMLResponse(html, status_code=status_code)


async def render(
    request: Request,
    name: str,
    context: dict[str, Any] | None = None,
    status_code: int = 200,
) -> Response:
    """
    Render a template with the app's view engine.

    Raises:
        ConfigurationError: If the app has no `views` directory configured
    """
    views: Views | None = getattr(request.app.state, "views", None)
    if views is None:
        raise ConfigurationError(
            "No view engine registered",
            suggestion="Set `views` in the configuration to a template directory",
        )
    return await views.render(request, name, context, status_code=status_code)
