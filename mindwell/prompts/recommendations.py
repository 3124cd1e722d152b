from __future__ import annotations

import json
from typing import Any, Mapping


def build_recommendation_prompt(context: Mapping[str, Any]) -> str:
    payload = json.dumps(context, ensure_ascii=False, default=str)
    return f"""You are a wellness coach. Based on the following user context, generate 3-5 personalized activity recommendations.
User Context: {payload}

Return ONLY a valid JSON object with no markdown formatting or additional text:
{{
  "recommendations": [
    {{
      "activityType": "meditation" | "exercise" | "walking" | "reading" | "journaling" | "therapy",
      "title": "string",
      "description": "string",
      "reasoning": "string",
      "expectedBenefits": ["string"],
      "difficultyLevel": "easy" | "medium" | "hard",
      "estimatedDuration": number of minutes between 5 and 120
    }}
  ]
}}"""


__all__ = ["build_recommendation_prompt"]
