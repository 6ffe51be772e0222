"""復習ストアを操作するコマンドラインツール。

init / record / due / dump / load / serve の各サブコマンドを提供する。
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path

from .config import Settings, settings
from .errors import ReviewStoreError
from .flows.answer_recording import upsert_answer_result_and_review_plan
from .logging import configure_logging
from .models.review import AnswerResultEnum
from .store import ReviewStore, create_store


def _parse_result(raw: str) -> AnswerResultEnum:
    text = raw.strip()
    if text.isdigit():
        return AnswerResultEnum(int(text))
    try:
        return AnswerResultEnum[text.upper()]
    except KeyError as exc:
        choices = ", ".join(member.name.lower() for member in AnswerResultEnum)
        raise argparse.ArgumentTypeError(f"unknown result {raw!r} (choose from {choices} or 0-4)") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qbreview", description=__doc__)
    parser.add_argument(
        "--backend",
        choices=("memory", "json", "sqlite"),
        default=None,
        help="KV バックエンド（既定: QBREVIEW_STORAGE_BACKEND の値）",
    )
    parser.add_argument(
        "--path",
        default=None,
        help="永続ストアのパス（既定: QBREVIEW_STORAGE_PATH の値）",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="ストアを初期化し、旧形式なら V2 へ移行する")

    record = sub.add_parser("record", help="回答結果を記録して次回復習日を表示する")
    record.add_argument("question_id", help="問題ID（例: 114C05）")
    record.add_argument("set_id", help="セットID")
    record.add_argument("result", type=_parse_result, help="none/wrong/difficult/correct/easy または 0-4")
    record.add_argument("--date", type=date.fromisoformat, default=None, help="回答日 YYYY-MM-DD（既定: 今日）")

    due = sub.add_parser("due", help="期限が来ている復習予定を一覧表示する")
    due.add_argument("--until", type=date.fromisoformat, default=None, help="YYYY-MM-DD（既定: 今日）")

    dump = sub.add_parser("dump", help="ストア全体を JSON で出力する")
    dump.add_argument("--output", type=Path, default=None, help="出力先ファイル（既定: 標準出力）")

    load = sub.add_parser("load", help="dump の出力からストア全体を復元する")
    load.add_argument("file", type=Path, help="dump で出力した JSON ファイル")

    serve = sub.add_parser("serve", help="HTTP API を起動する")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, str] = {}
    if args.backend:
        overrides["storage_backend"] = args.backend
    if args.path:
        overrides["storage_path"] = args.path
    return settings.model_copy(update=overrides) if overrides else settings


async def _run(args: argparse.Namespace, store: ReviewStore) -> int:
    await store.validate_version()

    if args.command == "init":
        print(f"store ready (version {await store.get_version()})")
    elif args.command == "record":
        answer_date = args.date or date.today()
        answer_result_id = await upsert_answer_result_and_review_plan(
            store, args.question_id, args.set_id, answer_date, args.result
        )
        plan = await store.get_review_plan_by_answer_result_id(answer_result_id)
        next_date = plan.next_date.isoformat() if plan else "-"
        print(f"answer_result_id={answer_result_id} next_review_date={next_date}")
    elif args.command == "due":
        until = args.until or date.today()
        for item in await store.get_uncompleted_review_plans(until):
            answer = item.answer_result
            print(f"{item.next_date.isoformat()}\t{answer.question_id}\t{answer.set_id}\t{answer.result.name.lower()}")
    elif args.command == "dump":
        dump = await store.dump()
        if args.output is None:
            print(dump)
        else:
            args.output.write_text(dump, encoding="utf-8")
    elif args.command == "load":
        await store.load(args.file.read_bytes())
        await store.validate_version()
        print(f"loaded {args.file} (version {await store.get_version()})")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    cfg = _settings_from_args(args)
    if args.command == "serve":
        import uvicorn

        from .main import create_app

        uvicorn.run(create_app(cfg), host=args.host, port=args.port, log_config=None)
        return 0
    configure_logging(cfg.log_level)
    store = create_store(cfg)
    try:
        return asyncio.run(_run(args, store))
    except (ReviewStoreError, ValueError) as exc:
        print(f"qbreview: error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
