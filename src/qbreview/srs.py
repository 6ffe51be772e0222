"""Review date policy.

新しい回答日・前回回答日・復習予定日・回答結果から次回復習日を決める。

- 初回回答: 回答結果ごとの固定日数（1/1/2/3/4 日後）
- 復習予定日以降の回答: 前回回答からの間隔に結果ごとの係数を掛けて今日から延ばす
- 復習予定日より前の回答: 復習予定日を同じ間隔だけ後ろへずらす
  （早めに解いたことで実質の間隔が短くならないようにする）

日付はすべて日単位で扱い、時刻は比較にも計算にも使わない。
"""

from __future__ import annotations

from datetime import date, timedelta

from .models.review import AnswerResultEnum

FIRST_ANSWER_OFFSET_DAYS: dict[AnswerResultEnum, int] = {
    AnswerResultEnum.NONE: 1,
    AnswerResultEnum.WRONG: 1,
    AnswerResultEnum.DIFFICULT: 2,
    AnswerResultEnum.CORRECT: 3,
    AnswerResultEnum.EASY: 4,
}

# (numerator, denominator) applied to the gap between the last two answers.
# Results are floored: CORRECT over a 3 day gap gives 4 days.
INTERVAL_FACTORS: dict[AnswerResultEnum, tuple[int, int]] = {
    AnswerResultEnum.DIFFICULT: (1, 1),
    AnswerResultEnum.CORRECT: (3, 2),
    AnswerResultEnum.EASY: (2, 1),
}

FAILURE_OFFSET_DAYS = 1


def _grown_interval(gap_days: int, result: AnswerResultEnum) -> int:
    numerator, denominator = INTERVAL_FACTORS[result]
    return (gap_days * numerator) // denominator


def calc_next_review_date(
    today: date,
    prev_answer_date: date | None,
    prior_due_date: date | None,
    result: AnswerResultEnum,
) -> date:
    """Return the next due date for a question answered on ``today``.

    Args:
        today: 新しい回答日
        prev_answer_date: 前回回答日（初回なら None）
        prior_due_date: 前回スケジュールされた復習予定日（初回なら None）
        result: 回答結果

    Returns:
        次回復習日
    """
    result = AnswerResultEnum(result)

    if prev_answer_date is None or prior_due_date is None:
        return today + timedelta(days=FIRST_ANSWER_OFFSET_DAYS[result])

    if result.is_failure:
        return today + timedelta(days=FAILURE_OFFSET_DAYS)

    gap_days = (today - prev_answer_date).days
    if today >= prior_due_date:
        return today + timedelta(days=_grown_interval(gap_days, result))
    return prior_due_date + timedelta(days=gap_days)
