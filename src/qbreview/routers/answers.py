from datetime import date

from fastapi import APIRouter, HTTPException, Request

from ..flows.answer_recording import upsert_answer_result_and_review_plan
from ..models.review import AnswerHistoryResponse, AnswerSubmitRequest, AnswerSubmitResponse
from ..store.review_store import ReviewStore

router = APIRouter(tags=["answers"])


@router.post(
    "",
    response_model=AnswerSubmitResponse,
    summary="回答結果を記録して次回復習日を更新",
)
async def submit_answer(req: AnswerSubmitRequest, request: Request) -> AnswerSubmitResponse:
    """Record one observed answer and reconcile the question's review plans.

    - answer_date 省略時はサーバの当日
    - 同じ日に同じ問題へ回答した場合は既存の回答結果を上書き
    """
    store: ReviewStore = request.app.state.review_store
    answer_date = req.answer_date or date.today()
    async with request.app.state.store_lock:
        answer_result_id = await upsert_answer_result_and_review_plan(
            store, req.question_id, req.set_id, answer_date, req.result
        )
        plan = await store.get_review_plan_by_answer_result_id(answer_result_id)
    if plan is None:
        raise HTTPException(status_code=500, detail="review plan was not created")
    return AnswerSubmitResponse(answer_result_id=answer_result_id, next_review_date=plan.next_date)


@router.get(
    "/{question_id}",
    response_model=AnswerHistoryResponse,
    summary="問題ごとの回答履歴",
)
async def answer_history(question_id: str, request: Request) -> AnswerHistoryResponse:
    store: ReviewStore = request.app.state.review_store
    try:
        async with request.app.state.store_lock:
            items = await store.get_answer_results_by_question_id(question_id)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"invalid question id: {question_id}") from exc
    return AnswerHistoryResponse(question_id=question_id, items=items)
