"""calc_next_review_date の日付計算を検証する。"""

from datetime import date

import pytest

from qbreview.models.review import AnswerResultEnum as R
from qbreview.srs import calc_next_review_date


def _d(text: str) -> date:
    return date.fromisoformat(text)


@pytest.mark.parametrize(
    ("result", "expected"),
    [
        (R.NONE, "2024-12-08"),
        (R.WRONG, "2024-12-08"),
        (R.DIFFICULT, "2024-12-09"),
        (R.CORRECT, "2024-12-10"),
        (R.EASY, "2024-12-11"),
    ],
)
def test_first_answer_uses_fixed_offsets(result, expected):
    """初めての回答は回答結果ごとの固定日数だけ後ろになる。"""

    assert calc_next_review_date(_d("2024-12-07"), None, None, result) == _d(expected)


def test_first_answer_when_only_one_of_the_history_dates_is_known():
    today = _d("2024-12-07")
    assert calc_next_review_date(today, _d("2024-12-01"), None, R.EASY) == _d("2024-12-11")
    assert calc_next_review_date(today, None, _d("2024-12-05"), R.EASY) == _d("2024-12-11")


@pytest.mark.parametrize(
    ("today", "result", "expected"),
    [
        ("2024-12-10", R.NONE, "2024-12-11"),
        ("2024-12-12", R.NONE, "2024-12-13"),
        ("2024-12-10", R.WRONG, "2024-12-11"),
        ("2024-12-12", R.WRONG, "2024-12-13"),
        ("2024-12-10", R.DIFFICULT, "2024-12-13"),
        ("2024-12-12", R.DIFFICULT, "2024-12-17"),
        ("2024-12-10", R.CORRECT, "2024-12-14"),
        ("2024-12-12", R.CORRECT, "2024-12-19"),
        ("2024-12-10", R.EASY, "2024-12-16"),
        ("2024-12-12", R.EASY, "2024-12-22"),
    ],
)
def test_on_time_or_late_answer_grows_from_today(today, result, expected):
    """今日が復習予定日以上なら、前回回答からの間隔を伸ばして今日から数える。"""

    assert calc_next_review_date(_d(today), _d("2024-12-07"), _d("2024-12-10"), result) == _d(expected)


@pytest.mark.parametrize(
    ("result", "expected"),
    [
        (R.NONE, "2024-12-11"),
        (R.WRONG, "2024-12-11"),
        (R.DIFFICULT, "2024-12-15"),
        (R.CORRECT, "2024-12-15"),
        (R.EASY, "2024-12-15"),
    ],
)
def test_early_answer_shifts_the_prior_due_date(result, expected):
    """今日が復習予定日より前なら、復習予定日を同じ間隔だけ後ろへずらす。"""

    assert calc_next_review_date(_d("2024-12-10"), _d("2024-12-07"), _d("2024-12-12"), result) == _d(expected)


def test_correct_interval_is_floored_for_odd_gaps():
    # gap=3 -> 4.5 -> 4, gap=4 -> 6
    assert calc_next_review_date(_d("2024-12-10"), _d("2024-12-07"), _d("2024-12-09"), R.CORRECT) == _d("2024-12-14")
    assert calc_next_review_date(_d("2024-12-11"), _d("2024-12-07"), _d("2024-12-09"), R.CORRECT) == _d("2024-12-17")


def test_arithmetic_crosses_month_and_year_boundaries():
    assert calc_next_review_date(_d("2024-12-30"), _d("2024-12-20"), _d("2024-12-30"), R.EASY) == _d("2025-01-19")
    assert calc_next_review_date(_d("2024-02-28"), None, None, R.DIFFICULT) == _d("2024-03-01")


def test_accepts_plain_integers_for_result():
    assert calc_next_review_date(_d("2024-12-07"), None, None, 4) == _d("2024-12-11")


def test_quality_treats_none_and_wrong_as_equal_worst():
    assert R.NONE.quality == R.WRONG.quality == 0
    assert R.WRONG.quality < R.DIFFICULT.quality < R.CORRECT.quality < R.EASY.quality
    assert R.NONE.is_failure and R.WRONG.is_failure
    assert not R.DIFFICULT.is_failure
