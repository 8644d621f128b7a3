"""
Proxy endpoint.

Swagger UI rewrites "try it out" calls to /proxy/?proxyUrl=<target>; the
request is relayed with its method, headers and body.
"""
from fastapi import APIRouter, Request

from multiswagger.api.routes import ANY_METHOD

router = APIRouter()


@router.api_route("/proxy", methods=ANY_METHOD)
@router.api_route("/proxy/{path:path}", methods=ANY_METHOD)
async def proxy(request: Request):
    target = request.query_params.get("proxyUrl")
    return await request.app.state.relay.forward(request, target)
