"""Versioned wire formats of the store root and the V1 → V2 migration.

ストアのルートは `version` キーで形式を区別する。

- V1: 可読形式。日付は "YYYY-MM-DD"、ID は文字列、完了フラグは bool。
- V2: 圧縮形式。フィールド名を 1 文字に縮め、日付は YYYYMMDD の整数、
  問題ID/セットIDは 16 進数として整数化、完了フラグは 0/1。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .common import encode_hex_id, iso_date_to_compact

if TYPE_CHECKING:
    from .adapters import KeyValueAdapter

VERSION_KEY = "version"
ANSWER_RESULTS_KEY = "answerResults"
ANSWER_RESULTS_NEXT_ID_KEY = "answerResultsNextId"
REVIEW_PLANS_KEY = "reviewPlans"
REVIEW_PLANS_NEXT_ID_KEY = "reviewPlansNextId"

ROOT_KEYS: tuple[str, ...] = (
    VERSION_KEY,
    ANSWER_RESULTS_KEY,
    ANSWER_RESULTS_NEXT_ID_KEY,
    REVIEW_PLANS_KEY,
    REVIEW_PLANS_NEXT_ID_KEY,
)

CURRENT_VERSION = 2


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# --- V1 ---


class V1AnswerResultRecord(_WireModel):
    id: int
    question_id: str = Field(alias="questionId")
    set_id: str = Field(alias="setId")
    answer_date: str = Field(alias="answerDate")
    result: int


class V1ReviewPlanRecord(_WireModel):
    id: int
    answer_result_id: int = Field(alias="answerResultId")
    next_date: str = Field(alias="nextDate")
    completed: bool


class V1Root(_WireModel):
    version: Literal[1] = 1
    answer_results: list[V1AnswerResultRecord] = Field(default_factory=list, alias="answerResults")
    answer_results_next_id: int = Field(default=0, alias="answerResultsNextId")
    review_plans: list[V1ReviewPlanRecord] = Field(default_factory=list, alias="reviewPlans")
    review_plans_next_id: int = Field(default=0, alias="reviewPlansNextId")


# --- V2 ---


class V2AnswerResultRecord(_WireModel):
    i: int
    q: int
    s: int
    a: int
    r: int = Field(ge=0, le=4)


class V2ReviewPlanRecord(_WireModel):
    i: int
    a: int
    n: int
    c: int = Field(ge=0, le=1)


class V2Root(_WireModel):
    version: Literal[2] = 2
    answer_results: list[V2AnswerResultRecord] = Field(default_factory=list, alias="answerResults")
    answer_results_next_id: int = Field(default=0, alias="answerResultsNextId")
    review_plans: list[V2ReviewPlanRecord] = Field(default_factory=list, alias="reviewPlans")
    review_plans_next_id: int = Field(default=0, alias="reviewPlansNextId")

    def to_storage(self) -> dict[str, Any]:
        """Return the root as the key → value mapping written to an adapter."""
        return self.model_dump(by_alias=True)


V2_DEFAULT_ROOT: dict[str, Any] = V2Root().to_storage()


def convert_v1_to_v2(root: V1Root) -> V2Root:
    """V1 のルートを V2 のルートへ変換する（純粋関数）。

    既に V2 のデータに対しては呼び出さないこと。呼び出し側で version を確認する。
    """

    return V2Root(
        answer_results=[
            V2AnswerResultRecord(
                i=record.id,
                q=encode_hex_id(record.question_id),
                s=encode_hex_id(record.set_id),
                a=iso_date_to_compact(record.answer_date),
                r=record.result,
            )
            for record in root.answer_results
        ],
        answer_results_next_id=root.answer_results_next_id,
        review_plans=[
            V2ReviewPlanRecord(
                i=plan.id,
                a=plan.answer_result_id,
                n=iso_date_to_compact(plan.next_date),
                c=1 if plan.completed else 0,
            )
            for plan in root.review_plans
        ],
        review_plans_next_id=root.review_plans_next_id,
    )


async def read_v1_root(adapter: KeyValueAdapter) -> V1Root:
    payload = {key: await adapter.get(key) for key in ROOT_KEYS}
    return V1Root.model_validate(payload)


async def migrate_v1_to_v2(adapter: KeyValueAdapter) -> V2Root:
    """Read the V1 root from ``adapter``, convert it and write the V2 root in one batch."""

    converted = convert_v1_to_v2(await read_v1_root(adapter))
    await adapter.set_many(converted.to_storage())
    return converted
