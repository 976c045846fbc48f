from __future__ import annotations

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import RedirectResponse

from ..domain.rules import RootRedirect
from ..logging_conf import get_logger
from ..service import redirect_service
from .render import docs_url, render_page

router = APIRouter()
logger = get_logger("api")


async def serve_import_path(request: Request) -> Response:
    """Answer a request under a registered import root.

    NotFound and RenderError propagate to the handlers installed by create_app.
    """
    table = request.app.state.route_table
    settings = request.app.state.settings

    result = redirect_service.resolve_request(
        table,
        host=request.headers.get("host", ""),
        path="/" + request.path_params["path"],
    )
    if isinstance(result, RootRedirect):
        return RedirectResponse(
            url=docs_url(settings.docs_base, result.import_root),
            status_code=status.HTTP_302_FOUND,
        )

    body = render_page(result, settings.docs_base)
    return Response(content=body, media_type="text/html; charset=utf-8")


# A plain route without `methods` matches every method, including
# non-standard ones; go get uses GET, browsers may send anything.
router.add_route("/{path:path}", serve_import_path, include_in_schema=False)
