"""
Spec endpoints.

- /swagger-specs : registered APIs, used by the UI dropdown
- /api/{name}    : the named spec, fetched live and rewritten
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from multiswagger.api.routes import ANY_METHOD

router = APIRouter()


@router.api_route("/swagger-specs", methods=ANY_METHOD)
@router.api_route("/list", methods=ANY_METHOD, include_in_schema=False)
async def list_specs(request: Request):
    """Current registry snapshot keyed by API name."""
    snapshot = request.app.state.registry.snapshot()
    return {name: record.to_dict() for name, record in snapshot.items()}


@router.api_route("/api/{name:path}", methods=ANY_METHOD)
async def get_spec(name: str, request: Request):
    doc = await request.app.state.renderer.render(name)
    return JSONResponse(doc)
