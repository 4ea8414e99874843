import json
import logging
import re
from typing import Any

import boto3
from botocore.config import Config

from jobtracker.config import settings
from jobtracker.core.errors import AIServiceError

logger = logging.getLogger(__name__)

RESUME_WRITER_ROLE = "You are an expert resume writer who produces truthful, ATS-friendly resumes."
CAREER_COACH_ROLE = "You are an experienced career coach and technical recruiter."


def is_llm_enabled() -> bool:
    """Whether Bedrock LLM is enabled."""
    return bool(settings.ai_enabled and settings.bedrock_llm_model_id and settings.aws_region)


def generate_text(prompt: str, system_role: str | None = None, timeout: float | None = None, max_tokens: int = 1500) -> str:
    """
    Single Bedrock converse call. Provider failures surface as AIServiceError;
    there is no retry here, callers decide.
    """
    if not is_llm_enabled():
        raise AIServiceError("AI generation is not configured")
    timeout = timeout or settings.ai_request_timeout_seconds
    try:
        client = boto3.client(
            "bedrock-runtime",
            region_name=settings.aws_region,
            config=Config(read_timeout=int(timeout), connect_timeout=10, retries={"max_attempts": 0}),
        )
        request = {
            "modelId": settings.bedrock_llm_model_id,
            "messages": [{"role": "user", "content": [{"text": prompt}]}],
            "inferenceConfig": {"maxTokens": max_tokens, "temperature": 0.3},
        }
        if system_role:
            request["system"] = [{"text": system_role}]
        response = client.converse(**request)
    except Exception as e:
        logger.warning("Bedrock LLM call failed: %s", e)
        raise AIServiceError("AI service request failed") from e

    blocks = (response.get("output") or {}).get("message", {}).get("content", [])
    text = "".join(b.get("text", "") for b in blocks if isinstance(b, dict)).strip()
    logger.debug("Bedrock LLM response length=%d", len(text))
    if not text:
        raise AIServiceError("AI service returned an empty response")
    return text


def _extract_json(text: str) -> Any:
    clean = re.sub(r"^```(?:json)?\s*", "", text.strip(), flags=re.IGNORECASE)
    clean = re.sub(r"\s*```$", "", clean).strip()
    try:
        return json.loads(clean)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}|\[[\s\S]*\]", clean)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                pass
    raise AIServiceError("AI service returned malformed JSON")


def generate_resume_content(profile: dict, job_description: str, target_role: str | None = None) -> dict:
    """Resume sections as JSON, built only from the user's own profile."""
    profile_json = json.dumps(profile, indent=2, ensure_ascii=False, default=str)
    prompt = f"""Write a resume for the candidate below, targeted at the job description.
Return ONLY a JSON object (no markdown, no prose) with this shape:
{{
  "summary": "3-4 sentence professional summary",
  "experience": [{{"job_title": "", "company": "", "location": "", "start_date": "YYYY-MM-DD", "end_date": "YYYY-MM-DD or null", "is_current": false, "achievements": [""]}}],
  "education": [{{"degree": "", "institution": "", "field_of_study": "", "end_date": "YYYY-MM-DD or null"}}],
  "skills": {{"technical": [{{"category": "", "items": [{{"name": ""}}]}}], "soft": [""], "languages": []}},
  "projects": [{{"name": "", "description": "", "technologies": [""]}}]
}}

Rules:
- Use only facts present in the candidate profile; never invent employers, dates or degrees.
- Rewrite achievements to match the job description's keywords where truthful.

Target role: {target_role or "as described in the job description"}

Job description:
{job_description}

Candidate profile JSON:
{profile_json}
"""
    obj = _extract_json(generate_text(prompt, RESUME_WRITER_ROLE, timeout=120.0, max_tokens=3000))
    if not isinstance(obj, dict):
        raise AIServiceError("AI service returned an unexpected resume shape")
    return obj


def generate_cover_letter(profile: dict, job_title: str, company: str, job_description: str, tone: str = "professional") -> str:
    profile_json = json.dumps(profile, indent=2, ensure_ascii=False, default=str)
    prompt = (
        f"Write a {tone} cover letter for the position of {job_title} at {company}.\n"
        "Keep it under 400 words, three to four paragraphs, no placeholders, plain text only.\n"
        "Use only facts from the candidate profile.\n\n"
        f"Job description:\n{job_description}\n\n"
        f"Candidate profile JSON:\n{profile_json}\n"
    )
    return generate_text(prompt, CAREER_COACH_ROLE, timeout=90.0)


def analyze_job_fit(profile: dict, job_description: str) -> dict:
    """Score 0-100 plus matching and missing skills."""
    profile_json = json.dumps(profile, indent=2, ensure_ascii=False, default=str)
    prompt = f"""Compare the candidate profile with the job description.
Return ONLY JSON: {{"score": number 0-100, "matching_skills": [""], "missing_skills": [""], "suggestions": [""], "summary": ""}}

Job description:
{job_description}

Candidate profile JSON:
{profile_json}
"""
    obj = _extract_json(generate_text(prompt, CAREER_COACH_ROLE))
    if not isinstance(obj, dict):
        raise AIServiceError("AI service returned an unexpected job-fit shape")
    try:
        score = float(obj.get("score", 0))
    except (TypeError, ValueError):
        score = 0.0
    # Normalize score whether model returns 0-1 or 0-100.
    if 0 < score <= 1.0:
        score *= 100
    return {
        "score": round(max(0.0, min(100.0, score)), 1),
        "matching_skills": [str(s) for s in obj.get("matching_skills") or []],
        "missing_skills": [str(s) for s in obj.get("missing_skills") or []],
        "suggestions": [str(s) for s in obj.get("suggestions") or []],
        "summary": str(obj.get("summary") or ""),
    }


def generate_interview_questions(job_title: str, job_description: str, count: int = 10) -> list[dict]:
    prompt = f"""Prepare {count} likely interview questions for a {job_title} candidate.
Return ONLY a JSON array: [{{"question": "", "category": "technical|behavioral|situational", "tip": ""}}]

Job description:
{job_description}
"""
    obj = _extract_json(generate_text(prompt, CAREER_COACH_ROLE))
    if isinstance(obj, dict):
        obj = obj.get("questions") or []
    return [q for q in obj if isinstance(q, dict) and q.get("question")][:count]
