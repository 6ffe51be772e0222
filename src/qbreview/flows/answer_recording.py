"""Reconciliation of one observed answer with the stored review plans.

1 件の新しい回答を受け取り、「問題ごとに未完了の復習予定はちょうど 1 件で、
常に最新の回答結果を参照している」状態を保つ。

- 当日の回答結果は新規作成せず上書きする
- 直前の回答結果の復習予定は完了扱いにする（次回復習日はそのまま）
- それより古い回答結果の復習予定は削除する
"""

from __future__ import annotations

from datetime import date

from ..logging import logger
from ..models.review import AnswerResult, AnswerResultEnum
from ..srs import calc_next_review_date
from ..store.review_store import ReviewStore


class AnswerRecordingFlow:
    """Record an answer and keep the question's review plans in sync."""

    def __init__(self, store: ReviewStore) -> None:
        self.store = store

    async def run(
        self,
        question_id: str,
        set_id: str,
        answer_date: date,
        result: AnswerResultEnum,
    ) -> int:
        answer_results = await self.store.get_answer_results_by_question_id(question_id)

        # answerDate 以外の回答履歴（日付順）と当日の回答履歴に分ける
        earlier: list[AnswerResult] = sorted(
            (ar for ar in answer_results if ar.answer_date != answer_date),
            key=lambda ar: (ar.answer_date, ar.id),
        )
        today_record = next((ar for ar in answer_results if ar.answer_date == answer_date), None)
        prev_record = earlier[-1] if earlier else None

        prev_plan = None
        if prev_record is not None:
            prev_plan = await self.store.get_review_plan_by_answer_result_id(prev_record.id)

        next_review_date = calc_next_review_date(
            answer_date,
            prev_record.answer_date if prev_record else None,
            prev_plan.next_date if prev_plan else None,
            result,
        )
        logger.info(
            "next_review_date_calculated",
            question_id=question_id,
            answer_date=answer_date.isoformat(),
            prev_answer_date=prev_record.answer_date.isoformat() if prev_record else None,
            prior_due_date=prev_plan.next_date.isoformat() if prev_plan else None,
            result=int(result),
            next_review_date=next_review_date.isoformat(),
        )

        answer_result_id = await self.store.upsert_answer_result(
            today_record.id if today_record else None,
            question_id,
            set_id,
            answer_date,
            result,
        )

        if prev_record is not None and prev_plan is not None:
            await self.store.upsert_review_plan(prev_record.id, prev_plan.next_date, True)

        await self.store.upsert_review_plan(answer_result_id, next_review_date, False)

        # 直前の 1 件を残し、それより古い回答結果の復習予定を削除する
        for older in reversed(earlier[:-1]):
            plan = await self.store.get_review_plan_by_answer_result_id(older.id)
            if plan is not None:
                await self.store.delete_review_plan(plan.id)

        return answer_result_id


async def upsert_answer_result_and_review_plan(
    store: ReviewStore,
    question_id: str,
    set_id: str,
    answer_date: date,
    result: AnswerResultEnum,
) -> int:
    """回答結果を登録・更新し、関連する復習予定を整合させる。

    Returns:
        登録・更新した回答結果のID
    """
    return await AnswerRecordingFlow(store).run(question_id, set_id, answer_date, result)
