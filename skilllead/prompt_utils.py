"""Utilities that build SkillLead provider prompts and read structured replies."""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .analysis_result import AnalysisContent
from .constants import ANALYSIS_SYSTEM_PROMPT, CHAT_SYSTEM_PROMPT
from .errors import ValidationError
from .records import ChatMessage, ProfessionalProfile, StudentProfile

ProfileRecord = Union[StudentProfile, ProfessionalProfile]
PromptMessage = dict[str, str]

CONTEXT_FIELDS_EXCLUDED = {"id", "user_id", "updated_at", "created_at"}


def _profile_json(profile: ProfileRecord) -> str:
    return json.dumps(profile.model_dump(mode="json", by_alias=True, exclude=CONTEXT_FIELDS_EXCLUDED), indent=2)


def build_analysis_messages(profile: ProfileRecord) -> List[PromptMessage]:
    """Messages for a one-shot analysis of ``profile``."""
    profile_type = profile.profile_type
    user_prompt = (
        f"Please analyze my {profile_type} profile and provide career guidance:\n\n"
        f"Profile Type: {profile_type}\n"
        f"Profile Data: {_profile_json(profile)}\n\n"
        "Please provide a comprehensive analysis with three career plans (A, B, C) and deep dive into Plan A. "
        "Return the result as a structured JSON object with the keys status, clarifications, interestsConfirmed, "
        "plans, planADeepDive, summary, and roadmap."
    )
    return [
        {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def build_chat_messages(
    message: str,
    *,
    profile: Optional[ProfileRecord],
    analysis: Optional[BaseModel],
    history: Sequence[ChatMessage],
) -> List[PromptMessage]:
    """System prompt, saved context, prior turns, then the new user message."""
    messages: List[PromptMessage] = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]

    context: List[str] = []
    if profile is not None:
        context.append(f"User's profile: {_profile_json(profile)}")
    if analysis is not None:
        content = AnalysisContent.model_validate(analysis.model_dump()).model_dump(mode="json", by_alias=True)
        context.append(f"User's career analysis: {json.dumps(content, indent=2)}")
    if context:
        messages.append({"role": "system", "content": "\n".join(context)})

    messages.extend({"role": item.role, "content": item.content} for item in history)
    messages.append({"role": "user", "content": message})
    return messages


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    first_newline = stripped.find("\n")
    body = stripped[first_newline + 1 :] if first_newline != -1 else ""
    if body.rstrip().endswith("```"):
        body = body.rstrip()[:-3]
    return body.strip()


def coerce_analysis_payload(payload: Any) -> AnalysisContent:
    """Turn a provider reply (text, dict, or model) into validated analysis content."""
    if isinstance(payload, AnalysisContent):
        return payload
    if isinstance(payload, str):
        try:
            payload = json.loads(_strip_code_fence(payload))
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Provider returned malformed JSON for the analysis: {exc}") from exc
    elif isinstance(payload, BaseModel):
        payload = payload.model_dump()
    if not isinstance(payload, Mapping):
        raise ValidationError(f"Unexpected analysis payload type: {type(payload).__name__}")
    try:
        return AnalysisContent.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise ValidationError(f"Provider analysis is missing required fields: {exc}") from exc


__all__ = ["build_analysis_messages", "build_chat_messages", "coerce_analysis_payload"]
