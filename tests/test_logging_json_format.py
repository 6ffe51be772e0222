import asyncio
import io
import json
from contextlib import redirect_stderr, redirect_stdout

from fastapi.testclient import TestClient

from qbreview.config import Settings
from qbreview.flows.answer_recording import upsert_answer_result_and_review_plan
from qbreview.main import create_app
from qbreview.models.review import AnswerResultEnum
from qbreview.store import InMemoryKeyValueAdapter, ReviewStore

from tests.kv_fakes import d


def _json_lines(buffer_text: str) -> list[dict]:
    """Parse structured lines, skipping plain stdlib output from other libraries (httpx など)."""

    return [json.loads(ln) for ln in buffer_text.splitlines() if ln.strip().startswith("{")]


def test_structlog_outputs_pure_json_without_stdlib_prefix():
    buf_out = io.StringIO()
    buf_err = io.StringIO()

    with redirect_stdout(buf_out), redirect_stderr(buf_err):
        from qbreview.logging import configure_logging, logger

        configure_logging("INFO")
        logger.info("store_version_initialized", version=2)

    raw = buf_err.getvalue().strip() or buf_out.getvalue().strip()
    lines = [ln for ln in raw.splitlines() if ln.strip()]
    message_text = lines[-1] if lines else ""

    assert message_text, "no log output captured"
    assert not message_text.startswith("INFO:"), message_text

    data = json.loads(message_text)
    assert data.get("event") == "store_version_initialized"
    assert data.get("level") in {"info", "INFO"}
    assert data.get("version") == 2
    assert "timestamp" in data


def test_log_level_filters_info_events():
    buf_err = io.StringIO()

    with redirect_stderr(buf_err):
        from qbreview.logging import configure_logging, logger

        configure_logging("WARNING")
        logger.info("answer_result_upserted", answer_result_id=0)
        logger.warning("answer_result_not_found", answer_result_id=9)

    events = [line["event"] for line in _json_lines(buf_err.getvalue())]
    assert events == ["answer_result_not_found"]


def test_answer_recording_logs_next_review_date():
    buf_err = io.StringIO()

    with redirect_stderr(buf_err):
        from qbreview.logging import configure_logging

        configure_logging("INFO")
        store = ReviewStore(InMemoryKeyValueAdapter())
        asyncio.run(store.validate_version())
        asyncio.run(
            upsert_answer_result_and_review_plan(store, "114C01", "114C", d("2024-12-07"), AnswerResultEnum.EASY)
        )

    calculated = [line for line in _json_lines(buf_err.getvalue()) if line["event"] == "next_review_date_calculated"]
    assert len(calculated) == 1
    assert calculated[0]["question_id"] == "114C01"
    assert calculated[0]["next_review_date"] == "2024-12-11"
    assert calculated[0]["prev_answer_date"] is None


def test_request_complete_log_contains_request_id_and_status_code() -> None:
    buf_err = io.StringIO()

    with redirect_stderr(buf_err):
        app = create_app(Settings(_env_file=None, storage_backend="memory", log_level="INFO"))
        with TestClient(app) as client:
            response = client.get("/healthz", headers={"X-Request-ID": "test-request-id"})

        assert response.status_code == 200

    request_lines = [line for line in _json_lines(buf_err.getvalue()) if line["event"] == "request_complete"]

    assert request_lines, "request_complete log line not found"
    data = request_lines[-1]
    assert data.get("request_id") == "test-request-id"
    assert data.get("status_code") == 200
    assert data.get("path") == "/healthz"
    assert data.get("is_error") is False
