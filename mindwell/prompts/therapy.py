"""Prompt templates for the chat and session-analysis workflows."""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence

DEFAULT_SYSTEM_PROMPT = """You are an AI therapist assistant. Your role is to:
1. Provide empathetic and supportive responses
2. Use evidence-based therapeutic techniques
3. Maintain professional boundaries
4. Monitor for risk factors
5. Guide users toward their therapeutic goals"""


def build_message_analysis_prompt(
    message: str,
    memory: Mapping[str, Any],
    goals: Sequence[str],
) -> str:
    context = json.dumps({"memory": memory, "goals": list(goals)}, ensure_ascii=False)
    return f"""Analyze this therapy message and provide insights. Return ONLY a valid JSON object with no markdown formatting or additional text.
Message: {message}
Context: {context}

Required JSON structure:
{{
  "emotionalState": "string",
  "themes": ["string"],
  "riskLevel": number,
  "recommendedApproach": "string",
  "progressIndicators": ["string"]
}}"""


def build_response_prompt(
    system_prompt: str,
    message: str,
    analysis: Mapping[str, Any],
    memory: Mapping[str, Any],
    goals: Sequence[str],
) -> str:
    return f"""{system_prompt}

Based on the following context, generate a therapeutic response:
Message: {message}
Analysis: {json.dumps(analysis, ensure_ascii=False)}
Memory: {json.dumps(memory, ensure_ascii=False)}
Goals: {json.dumps(list(goals), ensure_ascii=False)}

Provide a response that:
1. Addresses the immediate emotional needs
2. Uses appropriate therapeutic techniques
3. Shows empathy and understanding
4. Maintains professional boundaries
5. Considers safety and well-being"""


def build_session_analysis_prompt(session_content: str) -> str:
    return f"""Analyze this therapy session and provide insights.
Session Content: {session_content}

Return ONLY a valid JSON object with exactly these fields and no markdown:
{{
  "keyThemes": ["string"],
  "emotionalState": "string",
  "areasOfConcern": ["string"],
  "recommendations": ["string"],
  "progressIndicators": ["string"],
  "riskLevel": number between 0 and 10
}}"""


__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "build_message_analysis_prompt",
    "build_response_prompt",
    "build_session_analysis_prompt",
]
