"""
Meeting insight generation with Gemini.

One request per transcript; the model is asked for a fixed JSON shape which is
parsed, validated and normalized into `MeetingInsights`.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..core import config
from ..core.errors import InsightError
from ..schemas.meeting import MeetingInsights

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a helpful assistant that analyzes meeting transcripts and provides "
    "structured summaries. Always respond with valid JSON."
)

INSIGHTS_PROMPT = """You are an intelligent assistant helping a team organize and summarize their meetings.

You are given the transcript of a team meeting. Please analyze the full content and return a structured summary that includes the following sections:

1. **Meeting Summary**: A high-level, concise summary (2-4 sentences) describing the overall purpose of the meeting and what was accomplished.

2. **Topics Discussed**: A list of all major topics or themes covered, grouped if appropriate (e.g., "Product Development", "Team Updates", "Customer Feedback").

3. **Work Already Done**: Any completed tasks or accomplishments mentioned during the meeting. Include who completed them if available.

4. **Action Items**: Tasks or next steps that need to be done, with the person responsible and any deadlines mentioned.

5. **Decisions Made**: Decisions made in the meeting, such as approvals, rejections, strategy changes, or priorities.

6. **Follow-up Questions or Concerns**: Unanswered questions, points of confusion, or things that require follow-up after the meeting.

7. **Other Observations** (optional): Anything notable such as tone changes, conflicts, delays, or repeated emphasis.

Return your response as a JSON object with the following structure:
{{
  "summary": "string",
  "topicsDiscussed": ["string"],
  "workDone": ["string"],
  "actionItems": [{{"id": "string", "description": "string", "assignedTo": "string", "dueDate": "string", "status": "pending"}}],
  "decisionsMade": ["string"],
  "followUpQuestions": ["string"],
  "otherObservations": "string"
}}

Here is the transcript:

---
{transcript}
---"""

_FENCE_START = re.compile(r"^```(?:json)?\s*")
_FENCE_END = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_START.sub("", cleaned)
        cleaned = _FENCE_END.sub("", cleaned)
    return cleaned.strip()


LIST_FIELDS = ("topicsDiscussed", "workDone", "decisionsMade", "followUpQuestions")


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _as_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    return [_as_text(entry) for entry in value if entry is not None]


def normalize_insights(raw: Dict[str, Any]) -> MeetingInsights:
    """
    Coerce a model response into `MeetingInsights`.

    Off-shape values are stringified rather than rejected: numeric ids,
    grouped topic objects, list-valued observations. Action items are
    forced to pending and stamped with the current time.
    """
    now = datetime.now(timezone.utc).isoformat()

    raw_items = raw.get("actionItems") or []
    if not isinstance(raw_items, list):
        raw_items = [raw_items]

    action_items = []
    for index, item in enumerate(raw_items):
        if not isinstance(item, dict):
            item = {"description": _as_text(item)}
        action_items.append(
            {
                "id": _as_text(item.get("id") or f"action-{index + 1}"),
                "description": _as_text(item.get("description") or ""),
                "assignedTo": _as_text(item.get("assignedTo") or "Unassigned"),
                "dueDate": _as_text(item.get("dueDate") or ""),
                "status": "pending",
                "createdAt": now,
                "updatedAt": now,
            }
        )

    observations = raw.get("otherObservations")
    if isinstance(observations, list) and all(isinstance(o, str) for o in observations):
        observations = "\n".join(observations)

    payload = {
        "summary": _as_text(raw.get("summary") or ""),
        "actionItems": action_items,
        "otherObservations": _as_text(observations) if observations is not None else None,
    }
    for field in LIST_FIELDS:
        payload[field] = _as_text_list(raw.get(field))

    try:
        return MeetingInsights.model_validate(payload)
    except ValidationError as e:
        raise InsightError(f"Insight response did not match the expected shape: {e}") from e


class InsightGenerator:
    """Sends a transcript to Gemini and returns normalized insights."""

    def __init__(
        self,
        model=None,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ):
        self._model = model
        self.api_key = api_key or config.GEMINI_API_KEY
        self.model_name = model_name or config.GEMINI_MODEL
        self.temperature = config.INSIGHTS_TEMPERATURE if temperature is None else temperature
        self.max_output_tokens = max_output_tokens or config.INSIGHTS_MAX_OUTPUT_TOKENS

    @property
    def model(self):
        if self._model is None:
            if not self.api_key:
                raise InsightError(
                    "Gemini API key not found. Set GEMINI_API_KEY environment variable."
                )

            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(
                self.model_name, system_instruction=SYSTEM_INSTRUCTION
            )
            logger.info(f"Using Gemini model: {self.model_name}")
        return self._model

    async def generate(self, transcript: str) -> MeetingInsights:
        logger.info(f"Generating meeting insights for transcript of {len(transcript)} chars")

        try:
            response = await self.model.generate_content_async(
                INSIGHTS_PROMPT.format(transcript=transcript),
                generation_config={
                    "response_mime_type": "application/json",
                    "temperature": self.temperature,
                    "max_output_tokens": self.max_output_tokens,
                },
            )
            # .text raises ValueError when the response has no candidates
            text = response.text
        except InsightError:
            raise
        except Exception as e:
            raise InsightError(f"Failed to generate meeting insights: {e}") from e

        if not text or not text.strip():
            raise InsightError("No response from language model")

        try:
            raw = json.loads(strip_code_fences(text))
        except json.JSONDecodeError as e:
            raise InsightError(f"Failed to parse meeting insights JSON: {e}") from e

        if not isinstance(raw, dict):
            raise InsightError("Meeting insights JSON is not an object")

        insights = normalize_insights(raw)
        logger.info(
            f"Generated AI insights: {len(insights.topicsDiscussed)} topics, {len(insights.actionItems)} action items"
        )
        return insights


# Singleton instance
_insight_generator: Optional[InsightGenerator] = None


def get_insight_generator() -> InsightGenerator:
    global _insight_generator
    if _insight_generator is None:
        _insight_generator = InsightGenerator()
    return _insight_generator
