from __future__ import annotations

import json
from datetime import date
from typing import Any

from pydantic import BaseModel, ValidationError

from ..errors import (
    InternalConsistencyError,
    RecordNotFoundError,
    SchemaVersionError,
    SnapshotDecodeError,
)
from ..logging import logger
from ..models.review import AnswerResult, AnswerResultEnum, ReviewPlan, ReviewPlanWithAnswer
from .adapters import KeyValueAdapter
from .common import decode_compact_date, decode_hex_id, encode_compact_date, encode_hex_id
from .schema import (
    ANSWER_RESULTS_KEY,
    ANSWER_RESULTS_NEXT_ID_KEY,
    CURRENT_VERSION,
    REVIEW_PLANS_KEY,
    REVIEW_PLANS_NEXT_ID_KEY,
    ROOT_KEYS,
    V2_DEFAULT_ROOT,
    VERSION_KEY,
    V2AnswerResultRecord,
    V2ReviewPlanRecord,
    migrate_v1_to_v2,
)


class _SnapshotRoot(BaseModel):
    """Structural shape of a dumped root; record fields are not validated."""

    version: int
    answerResults: list[dict[str, Any]]
    answerResultsNextId: int
    reviewPlans: list[dict[str, Any]]
    reviewPlansNextId: int


def _to_answer_result(raw: dict[str, Any]) -> AnswerResult:
    record = V2AnswerResultRecord.model_validate(raw)
    return AnswerResult(
        id=record.i,
        question_id=decode_hex_id(record.q),
        set_id=decode_hex_id(record.s),
        answer_date=decode_compact_date(record.a),
        result=AnswerResultEnum(record.r),
    )


def _to_review_plan(raw: dict[str, Any]) -> ReviewPlan:
    record = V2ReviewPlanRecord.model_validate(raw)
    return ReviewPlan(
        id=record.i,
        answer_result_id=record.a,
        next_date=decode_compact_date(record.n),
        completed=record.c != 0,
    )


class ReviewStore:
    """CRUD over answer results and review plans stored in a key-value adapter.

    保存形式は常に V2（圧縮形式）で、呼び出し側には日付型・文字列IDに
    復元したモデルを返す。複数キーにまたがる更新は `set_many` で一度に書き込む。
    ロックは持たないため、同じストアへの並行呼び出しは呼び出し側で直列化すること。
    """

    def __init__(self, adapter: KeyValueAdapter) -> None:
        self._adapter = adapter

    @property
    def adapter(self) -> KeyValueAdapter:
        return self._adapter

    async def validate_version(self) -> None:
        """ストアのバージョンを確認し、既定値の投入または V1 → V2 移行を行う。"""

        if not await self._adapter.has_key(VERSION_KEY):
            await self._adapter.set_many(V2_DEFAULT_ROOT)
            logger.info("store_version_initialized", version=CURRENT_VERSION)
        version = await self.get_version()
        if version == 1:
            await migrate_v1_to_v2(self._adapter)
            version = await self.get_version()
            if version != CURRENT_VERSION:
                raise SchemaVersionError(f"migration left store at version {version}")
            logger.info("store_migrated", from_version=1, to_version=version)
        elif version != CURRENT_VERSION:
            logger.warning("store_version_unrecognized", version=version)

    async def get_version(self) -> int:
        return int(await self._adapter.get(VERSION_KEY))

    async def _answer_records(self) -> list[dict[str, Any]]:
        return list(await self._adapter.get(ANSWER_RESULTS_KEY))

    async def _review_records(self) -> list[dict[str, Any]]:
        return list(await self._adapter.get(REVIEW_PLANS_KEY))

    async def upsert_answer_result(
        self,
        id: int | None,
        question_id: str,
        set_id: str,
        answer_date: date,
        result: AnswerResultEnum,
    ) -> int:
        """回答結果を登録または更新し、そのIDを返す。

        Args:
            id: 更新対象のID（None なら新規作成）
            question_id: 問題ID
            set_id: セットID
            answer_date: 回答日
            result: 回答結果

        Raises:
            RecordNotFoundError: id に一致する回答結果がない場合（ストアは変更しない）
        """
        encoded = {
            "q": encode_hex_id(question_id),
            "s": encode_hex_id(set_id),
            "a": encode_compact_date(answer_date),
            "r": int(AnswerResultEnum(result)),
        }
        records = await self._answer_records()
        next_id = int(await self._adapter.get(ANSWER_RESULTS_NEXT_ID_KEY))

        if id is not None:
            index = next((idx for idx, rec in enumerate(records) if rec["i"] == id), None)
            if index is None:
                logger.warning("answer_result_not_found", answer_result_id=id, question_id=question_id)
                raise RecordNotFoundError("answer result", id)
            records[index] = {"i": id, **encoded}
            await self._adapter.set_many({ANSWER_RESULTS_KEY: records})
            logger.info(
                "answer_result_upserted",
                answer_result_id=id,
                question_id=question_id,
                answer_date=answer_date.isoformat(),
                result=int(result),
                created=False,
            )
            return id

        records.append({"i": next_id, **encoded})
        await self._adapter.set_many(
            {ANSWER_RESULTS_KEY: records, ANSWER_RESULTS_NEXT_ID_KEY: next_id + 1}
        )
        logger.info(
            "answer_result_upserted",
            answer_result_id=next_id,
            question_id=question_id,
            answer_date=answer_date.isoformat(),
            result=int(result),
            created=True,
        )
        return next_id

    async def get_answer_result(self, id: int) -> AnswerResult | None:
        for rec in await self._answer_records():
            if rec["i"] == id:
                return _to_answer_result(rec)
        return None

    async def get_answer_results_by_question_id(self, question_id: str) -> list[AnswerResult]:
        """問題IDに紐づく回答結果を保存順で返す。"""

        q = encode_hex_id(question_id)
        return [_to_answer_result(rec) for rec in await self._answer_records() if rec["q"] == q]

    async def upsert_review_plan(self, answer_result_id: int, next_date: date, completed: bool) -> int:
        """復習予定を登録または更新し、そのIDを返す。

        answer_result_id に紐づく復習予定がなければ新規作成する。

        Raises:
            RecordNotFoundError: answer_result_id の回答結果が存在しない場合
        """
        answers = await self._answer_records()
        if not any(rec["i"] == answer_result_id for rec in answers):
            logger.warning("answer_result_not_found", answer_result_id=answer_result_id)
            raise RecordNotFoundError("answer result", answer_result_id)

        plans = await self._review_records()
        next_id = int(await self._adapter.get(REVIEW_PLANS_NEXT_ID_KEY))
        n = encode_compact_date(next_date)
        c = 1 if completed else 0

        index = next((idx for idx, rec in enumerate(plans) if rec["a"] == answer_result_id), None)
        if index is None:
            plans.append({"i": next_id, "a": answer_result_id, "n": n, "c": c})
            await self._adapter.set_many({REVIEW_PLANS_KEY: plans, REVIEW_PLANS_NEXT_ID_KEY: next_id + 1})
            plan_id = next_id
            created = True
        else:
            plans[index]["n"] = n
            plans[index]["c"] = c
            await self._adapter.set_many({REVIEW_PLANS_KEY: plans})
            plan_id = int(plans[index]["i"])
            created = False
        logger.info(
            "review_plan_upserted",
            review_plan_id=plan_id,
            answer_result_id=answer_result_id,
            next_date=next_date.isoformat(),
            completed=completed,
            created=created,
        )
        return plan_id

    async def get_review_plan_by_answer_result_id(self, answer_result_id: int) -> ReviewPlan | None:
        for rec in await self._review_records():
            if rec["a"] == answer_result_id:
                return _to_review_plan(rec)
        return None

    async def get_uncompleted_review_plans(self, until_or_equal_to: date) -> list[ReviewPlanWithAnswer]:
        """未完了かつ次回復習日が指定日以前の復習予定を、回答結果と結合して日付昇順で返す。

        Raises:
            InternalConsistencyError: 復習予定が存在しない回答結果を参照している場合
        """
        limit = encode_compact_date(until_or_equal_to)
        plans = await self._review_records()
        answers_by_id = {rec["i"]: rec for rec in await self._answer_records()}

        due = sorted(
            (rec for rec in plans if rec["c"] == 0 and rec["n"] <= limit),
            key=lambda rec: rec["n"],
        )
        items: list[ReviewPlanWithAnswer] = []
        for rec in due:
            answer = answers_by_id.get(rec["a"])
            if answer is None:
                logger.warning("review_plan_dangling", review_plan_id=rec["i"], answer_result_id=rec["a"])
                raise InternalConsistencyError(f"Answer result not found: {rec['a']}")
            plan = _to_review_plan(rec)
            items.append(
                ReviewPlanWithAnswer(**plan.model_dump(), answer_result=_to_answer_result(answer))
            )
        return items

    async def delete_review_plan(self, id: int) -> None:
        """復習予定を削除する。存在しない場合は何もしない。"""

        plans = await self._review_records()
        remaining = [rec for rec in plans if rec["i"] != id]
        if len(remaining) == len(plans):
            return
        await self._adapter.set_many({REVIEW_PLANS_KEY: remaining})
        logger.info("review_plan_deleted", review_plan_id=id)

    async def dump(self) -> str:
        """ストアのルート全体を JSON 文字列として返す。"""

        root = {key: await self._adapter.get(key) for key in ROOT_KEYS}
        return json.dumps(root, ensure_ascii=False, separators=(",", ":"))

    async def load(self, dump: str | bytes) -> None:
        """`dump` の出力でストアのルート全体を置き換える。

        バージョンの移行は行わない。旧形式を読み込んだ場合は続けて
        `validate_version` を呼ぶこと。

        Raises:
            SnapshotDecodeError: JSON として解釈できない、またはルートのキーが欠けている場合
                （書き込み前に送出するのでストアは変更されない）
        """
        try:
            text = dump.decode("utf-8") if isinstance(dump, bytes) else dump
            snapshot = _SnapshotRoot.model_validate_json(text)
        except UnicodeDecodeError as exc:
            logger.warning("snapshot_decode_failed", error=str(exc))
            raise SnapshotDecodeError(str(exc)) from exc
        except ValidationError as exc:
            logger.warning("snapshot_decode_failed", error=str(exc).splitlines()[0])
            raise SnapshotDecodeError(str(exc)) from exc
        await self._adapter.set_many(snapshot.model_dump())
        logger.info(
            "snapshot_loaded",
            version=snapshot.version,
            answer_results=len(snapshot.answerResults),
            review_plans=len(snapshot.reviewPlans),
        )
