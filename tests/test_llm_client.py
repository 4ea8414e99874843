import pytest

import jobtracker.services.llm_client as llm
from jobtracker.core.errors import AIServiceError


class _Client:
    def __init__(self, text="ok-response", error=None):
        self.text = text
        self.error = error
        self.requests = []

    def converse(self, **request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return {"output": {"message": {"content": [{"text": self.text}]}}}


@pytest.fixture
def bedrock(monkeypatch):
    monkeypatch.setattr(llm.settings, "ai_enabled", True)
    monkeypatch.setattr(llm.settings, "bedrock_llm_model_id", "mistral.ministral-3-8b-instruct")
    monkeypatch.setattr(llm.settings, "aws_region", "us-west-2")

    def _install(client):
        monkeypatch.setattr(llm, "boto3", type("B", (), {"client": staticmethod(lambda *args, **kwargs: client)}))
        return client

    return _install


def test_generate_text_returns_model_text(bedrock):
    client = bedrock(_Client("  hello  "))
    assert llm.generate_text("prompt", system_role="coach") == "hello"
    request = client.requests[0]
    assert request["modelId"] == "mistral.ministral-3-8b-instruct"
    assert request["system"] == [{"text": "coach"}]


def test_generate_text_wraps_provider_errors(bedrock):
    bedrock(_Client(error=RuntimeError("throttled")))
    with pytest.raises(AIServiceError, match="request failed"):
        llm.generate_text("prompt")


def test_generate_text_rejects_empty_response(bedrock):
    bedrock(_Client(""))
    with pytest.raises(AIServiceError, match="empty"):
        llm.generate_text("prompt")


def test_disabled_ai_fails_fast(monkeypatch):
    monkeypatch.setattr(llm.settings, "ai_enabled", False)
    assert llm.is_llm_enabled() is False
    with pytest.raises(AIServiceError, match="not configured"):
        llm.generate_text("prompt")


def test_extract_json_strips_fences_and_prose():
    assert llm._extract_json('```json\n{"a": 1}\n```') == {"a": 1}
    assert llm._extract_json('Sure! Here it is: {"a": [1, 2]} Hope that helps.') == {"a": [1, 2]}
    with pytest.raises(AIServiceError):
        llm._extract_json("no json here")


def test_generate_resume_content_requires_object(bedrock):
    bedrock(_Client('["not", "an", "object"]'))
    with pytest.raises(AIServiceError):
        llm.generate_resume_content({"name": "Asha"}, "Backend role")


def test_analyze_job_fit_normalizes_fractional_score(bedrock):
    bedrock(_Client('{"score": 0.82, "matching_skills": ["Python"], "missing_skills": ["Go"], "summary": "Strong"}'))
    result = llm.analyze_job_fit({"name": "Asha"}, "Backend role")
    assert result["score"] == 82.0
    assert result["matching_skills"] == ["Python"]
    assert result["suggestions"] == []


def test_analyze_job_fit_clamps_score(bedrock):
    bedrock(_Client('{"score": 250}'))
    assert llm.analyze_job_fit({}, "role")["score"] == 100.0


def test_generate_interview_questions_filters_and_limits(bedrock):
    bedrock(_Client('{"questions": [{"question": "Q1"}, {"tip": "no question"}, {"question": "Q2"}, {"question": "Q3"}]}'))
    questions = llm.generate_interview_questions("SRE", "desc", count=2)
    assert [q["question"] for q in questions] == ["Q1", "Q2"]


def test_generate_cover_letter_returns_text(bedrock):
    client = bedrock(_Client("Dear hiring manager"))
    letter = llm.generate_cover_letter({"name": "Asha"}, "SRE", "Initech", "desc", tone="friendly")
    assert letter == "Dear hiring manager"
    assert "friendly cover letter for the position of SRE at Initech" in client.requests[0]["messages"][0]["content"][0]["text"]
