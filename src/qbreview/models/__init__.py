from .review import (
    AnswerHistoryResponse,
    AnswerResult,
    AnswerResultEnum,
    AnswerSubmitRequest,
    AnswerSubmitResponse,
    RestoreResponse,
    ReviewDueResponse,
    ReviewPlan,
    ReviewPlanWithAnswer,
)

__all__ = [
    "AnswerHistoryResponse",
    "AnswerResult",
    "AnswerResultEnum",
    "AnswerSubmitRequest",
    "AnswerSubmitResponse",
    "RestoreResponse",
    "ReviewDueResponse",
    "ReviewPlan",
    "ReviewPlanWithAnswer",
]
