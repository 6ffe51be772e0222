"""Spaced-repetition review scheduling for exam questions."""

from .flows.answer_recording import AnswerRecordingFlow, upsert_answer_result_and_review_plan
from .models.review import AnswerResult, AnswerResultEnum, ReviewPlan, ReviewPlanWithAnswer
from .srs import calc_next_review_date
from .store import ReviewStore

__all__ = [
    "AnswerRecordingFlow",
    "AnswerResult",
    "AnswerResultEnum",
    "ReviewPlan",
    "ReviewPlanWithAnswer",
    "ReviewStore",
    "calc_next_review_date",
    "upsert_answer_result_and_review_plan",
]
