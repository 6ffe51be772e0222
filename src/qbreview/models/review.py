from __future__ import annotations

from datetime import date
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class AnswerResultEnum(IntEnum):
    """Answer quality recorded for one question on one day.

    回答結果の五段階評価。`NONE`（未評価）と `WRONG`（不正解）は
    順序上どちらも最低評価として扱う。
    """

    NONE = 0
    WRONG = 1
    DIFFICULT = 2
    CORRECT = 3
    EASY = 4

    @property
    def quality(self) -> int:
        """Ordinal quality where NONE and WRONG share the lowest rank."""
        return max(int(self) - 1, 0)

    @property
    def is_failure(self) -> bool:
        return self.quality == 0


class AnswerResult(BaseModel):
    """One observation of a learner answering a question on a calendar day."""

    model_config = ConfigDict(frozen=True)

    id: int
    question_id: str
    set_id: str
    answer_date: date
    result: AnswerResultEnum


class ReviewPlan(BaseModel):
    """Scheduling state attached to exactly one answer result.

    - next_date: 次回復習日
    - completed: 後続の回答で置き換えられた（復習済み）なら True
    """

    model_config = ConfigDict(frozen=True)

    id: int
    answer_result_id: int
    next_date: date
    completed: bool


class ReviewPlanWithAnswer(ReviewPlan):
    """A review plan joined with the answer result it schedules."""

    answer_result: AnswerResult


class AnswerSubmitRequest(BaseModel):
    """回答結果の登録リクエスト。

    answer_date を省略した場合はサーバ側の当日として扱う。
    """

    question_id: str = Field(min_length=1, max_length=32, pattern=r"^[0-9A-Fa-f]+$")
    set_id: str = Field(min_length=1, max_length=32, pattern=r"^[0-9A-Fa-f]+$")
    result: AnswerResultEnum
    answer_date: date | None = None


class AnswerSubmitResponse(BaseModel):
    answer_result_id: int
    next_review_date: date


class AnswerHistoryResponse(BaseModel):
    question_id: str
    items: list[AnswerResult]


class ReviewDueResponse(BaseModel):
    """Response model for the review queue.

    指定日までに復習期限が来ている未完了の復習予定（次回復習日の昇順）。
    """

    until: date
    items: list[ReviewPlanWithAnswer]


class RestoreResponse(BaseModel):
    ok: bool
    version: int
