from .answer_recording import AnswerRecordingFlow, upsert_answer_result_and_review_plan

__all__ = ["AnswerRecordingFlow", "upsert_answer_result_and_review_plan"]
