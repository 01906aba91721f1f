from __future__ import annotations

import io
import json

import pytest
from fastapi.testclient import TestClient
from reportlab.lib.pagesizes import LETTER
from reportlab.pdfgen import canvas

from hrapi.main import app
from hrapi.services import reports
from hrapi.services.config import get_settings
from hrapi.services.errors import NotFound, ValidationError
from hrapi.services.llm import LLMError, LLMResponse

from conftest import TODAY


@pytest.fixture
def fake_llm(monkeypatch):
    """Replace the completion call; returns the list of prompts it received."""
    prompts: list[list[dict[str, str]]] = []
    replies: list[str] = []

    async def fake_chat(messages, temperature=0.7, max_tokens=500, model=None):  # noqa: ARG001
        prompts.append(messages)
        text = replies.pop(0) if replies else "따뜻한 소개 문구"
        return LLMResponse(text=text, model="fake-model", prompt_tokens=1, completion_tokens=1, total_tokens=2)

    monkeypatch.setattr(reports, "llm_chat_with_usage", fake_chat)
    return prompts, replies


def resume_pdf(lines: list[str]) -> bytes:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=LETTER)
    y = 720
    for line in lines:
        pdf.drawString(72, y, line)
        y -= 18
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def test_employee_comment_prompt_fills_gaps() -> None:
    prompt = reports.employee_comment_prompt({"name": "김민준", "status": "대기", "department": None})
    assert "이름:김민준" in prompt
    assert "부서:미배정" in prompt
    assert "직급:직원" in prompt
    assert "재직상태:대기" in prompt


def test_generate_employee_comment_is_stored(staff, with_conn, query, fake_llm) -> None:
    prompts, _ = fake_llm

    result = with_conn(lambda conn: reports.generate_employee_comment(conn, staff["waiting"]))

    assert result["comment"] == "따뜻한 소개 문구"
    assert "부서:개발팀" in prompts[0][0]["content"]
    stored = query("SELECT kind, subject_id, content, model FROM ai_reports")
    assert stored == [
        {"kind": "employee_comment", "subject_id": staff["waiting"], "content": "따뜻한 소개 문구", "model": "fake-model"}
    ]


def test_comment_for_unknown_employee_skips_llm(staff, with_conn, fake_llm) -> None:
    prompts, _ = fake_llm
    with pytest.raises(NotFound):
        with_conn(lambda conn: reports.generate_employee_comment(conn, 999))
    assert prompts == []


def test_staffing_facts_use_derived_site_status(staff, with_conn, insert) -> None:
    insert("sites", name="만료 현장", contract_end="2024-06-14", status="진행중")
    insert("assignments", employee_id=staff["active"], site_id=staff["site_a"], status="진행중", start_date="2024-02-01")

    facts = with_conn(lambda conn: reports.collect_staffing_facts(conn, TODAY))

    assert facts["as_of"] == "2024-06-15"
    assert facts["sites"] == {"예정": 1, "진행중": 1, "종료": 1}
    assert facts["ending_sites"] == [{"name": "한빛은행 차세대", "contract_end": "2024-12-31"}]
    assert facts["employees"]["대기"] == 1
    assert facts["employees"]["파견중"] == 0
    assert [row["employee"] for row in facts["open_assignments"]] == ["박도윤"]


def test_status_report_sends_facts_and_saves(staff, with_conn, query, fake_llm) -> None:
    prompts, replies = fake_llm
    replies.append("인력 현황 보고서")

    result = with_conn(lambda conn: reports.generate_status_report(conn, TODAY))

    assert result["content"] == "인력 현황 보고서"
    user_prompt = prompts[0][-1]["content"]
    assert '"as_of": "2024-06-15"' in user_prompt
    assert "한빛은행 차세대" in user_prompt
    assert query("SELECT kind FROM ai_reports") == [{"kind": "status_report"}]


def test_extract_resume_text_from_pdf() -> None:
    data = resume_pdf(["Kim Minjun", "Backend developer, 7 years", "Email: minjun@example.com"])
    text = reports.extract_resume_text("resume.pdf", data)
    assert "Kim Minjun" in text
    assert "minjun@example.com" in text


def test_extract_resume_text_plain_and_empty() -> None:
    assert reports.extract_resume_text("cv.txt", "  이름: 김민준 \n\n 경력: 5년 ".encode()) == "이름: 김민준\n경력: 5년"
    with pytest.raises(ValidationError):
        reports.extract_resume_text("cv.txt", b"   \n  ")


def test_clean_resume_fields_keeps_known_fields_only() -> None:
    fields = reports.clean_resume_fields(
        {
            "name": " 김민준 ",
            "birth_date": "1990-03-07T00:00:00",
            "age": "34",
            "status": "재직",
            "department_id": 3,
            "salary": 1,
            "work_history": ["A사 3년", "B사 2년"],
            "email": "",
        }
    )
    assert fields == {
        "name": "김민준",
        "birth_date": "1990-03-07",
        "age": 34,
        "work_history": '["A사 3년", "B사 2년"]',
    }


def test_parse_resume_uses_llm_json(with_conn, query, fake_llm) -> None:
    prompts, replies = fake_llm
    replies.append('추출 결과입니다:\n{"name": "Kim Minjun", "applied_part": "백엔드", "age": 34}')
    data = resume_pdf(["Kim Minjun", "Backend developer"])

    result = with_conn(lambda conn: reports.parse_resume(conn, "cv.pdf", data))

    assert result["fields"] == {"name": "Kim Minjun", "applied_part": "백엔드", "age": 34}
    assert result["raw_text_chars"] > 0
    assert "Kim Minjun" in prompts[0][-1]["content"]
    assert query("SELECT kind FROM ai_reports") == [{"kind": "resume_parse"}]


def test_parse_resume_rejects_non_json_answer(with_conn, fake_llm) -> None:
    _, replies = fake_llm
    replies.append("죄송합니다, 읽을 수 없습니다.")
    with pytest.raises(LLMError):
        with_conn(lambda conn: reports.parse_resume(conn, "cv.txt", b"Kim Minjun"))


def test_ai_routes_when_enabled(staff, monkeypatch, fake_llm) -> None:
    _, replies = fake_llm
    monkeypatch.setenv("USE_REAL_LLM", "true")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    get_settings.cache_clear()

    with TestClient(app) as client:
        comment = client.post(f"/api/employees/{staff['waiting']}/ai-comment")
        assert comment.status_code == 200
        assert comment.json()["comment"] == "따뜻한 소개 문구"

        replies.append(json.dumps({"name": "Lee Seoyeon", "phone": "010-0000-1111"}))
        parsed = client.post(
            "/api/employees/parse-resume",
            files={"file": ("cv.txt", "Lee Seoyeon 010-0000-1111".encode(), "text/plain")},
        )
        assert parsed.status_code == 200
        assert parsed.json()["fields"] == {"name": "Lee Seoyeon", "phone": "010-0000-1111"}

        replies.append("보고서 본문")
        status = client.post("/api/reports/status")
        assert status.status_code == 200

        listing = client.get("/api/reports").json()
        assert [row["kind"] for row in listing] == ["status_report", "resume_parse", "employee_comment"]
        only_comments = client.get("/api/reports", params={"kind": "employee_comment"}).json()
        assert len(only_comments) == 1
        assert client.get(f"/api/reports/{listing[0]['id']}").json()["content"] == "보고서 본문"
        assert client.get("/api/reports/999").status_code == 404
        assert client.get("/api/reports", params={"kind": "memo"}).status_code == 400


def test_llm_failure_maps_to_502(staff, monkeypatch) -> None:
    async def failing_chat(*args, **kwargs):
        raise LLMError("Completion endpoint unreachable")

    monkeypatch.setattr(reports, "llm_chat_with_usage", failing_chat)
    monkeypatch.setenv("USE_REAL_LLM", "true")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    get_settings.cache_clear()

    with TestClient(app) as client:
        response = client.post(f"/api/employees/{staff['waiting']}/ai-comment")
    assert response.status_code == 502
    assert response.json()["message"] == "ai error"
