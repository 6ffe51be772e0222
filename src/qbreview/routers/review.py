from datetime import date

from fastapi import APIRouter, Query, Request

from ..models.review import ReviewDueResponse
from ..store.review_store import ReviewStore

router = APIRouter(tags=["review"])


@router.get(
    "/due",
    response_model=ReviewDueResponse,
    summary="復習期限が来ている問題の一覧",
)
async def review_due(
    request: Request,
    until: date | None = Query(default=None, description="この日付以前が期限の復習予定を返す（既定: 今日）"),
) -> ReviewDueResponse:
    """Return uncompleted review plans due on or before ``until``, earliest first."""
    store: ReviewStore = request.app.state.review_store
    until_date = until or date.today()
    async with request.app.state.store_lock:
        items = await store.get_uncompleted_review_plans(until_date)
    return ReviewDueResponse(until=until_date, items=items[: request.app.state.settings.review_due_limit])
