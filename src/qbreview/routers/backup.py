from fastapi import APIRouter, Request
from fastapi.responses import Response

from ..models.review import RestoreResponse
from ..store.review_store import ReviewStore

router = APIRouter(tags=["backup"])


@router.get("", summary="ストア全体をJSONでダンプ")
async def backup(request: Request) -> Response:
    """Return the full store root as compact JSON."""
    store: ReviewStore = request.app.state.review_store
    async with request.app.state.store_lock:
        dump = await store.dump()
    return Response(content=dump, media_type="application/json")


@router.post("/restore", response_model=RestoreResponse, summary="ダンプからストア全体を復元")
async def restore(request: Request) -> RestoreResponse:
    """Replace the whole store root with the JSON document in the request body.

    不正な JSON（UTF-8 として読めないものを含む）は書き込み前に 400 で拒否する。
    旧形式（V1）のダンプは復元直後に V2 へ移行する。
    """
    store: ReviewStore = request.app.state.review_store
    body = await request.body()
    async with request.app.state.store_lock:
        await store.load(body)
        await store.validate_version()
        version = await store.get_version()
    return RestoreResponse(ok=True, version=version)
