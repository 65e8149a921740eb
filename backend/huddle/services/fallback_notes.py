"""
Local, model-free notes derived from a transcript.

These are always computed and stored alongside (never merged with) the
language-model insights, so a meeting has a summary and action items even
when the insight call fails.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Dict, List

logger = logging.getLogger(__name__)

ACTION_KEYWORDS = [
    "action item",
    "todo",
    "follow up",
    "next step",
    "assign",
    "responsible for",
    "will do",
    "need to",
    "should do",
]

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_SPEAKER_MARKER = re.compile(r"Speaker \d+:")


def split_sentences(transcript: str) -> List[str]:
    return _SENTENCE_SPLIT.split(transcript)


def generate_fallback_summary(transcript: str) -> str:
    """First three sentences plus word and speaker-turn counts."""
    try:
        sentences = [s for s in split_sentences(transcript) if s.strip()]
        summary = ". ".join(sentences[:3]) + "."

        word_count = len(re.split(r"\s+", transcript))
        speaker_count = len(_SPEAKER_MARKER.findall(transcript))

        return (
            f"{summary}\n\nMeeting Statistics:\n"
            f"- Word count: {word_count}\n"
            f"- Number of speakers: {speaker_count}"
        )
    except Exception as e:
        logger.error(f"Summary generation error: {e}", exc_info=True)
        return "Summary generation failed. Please review the transcript manually."


def extract_keyword_action_items(transcript: str) -> List[Dict]:
    """Sentences mentioning an action keyword, as pending action items."""
    try:
        action_items = []
        for index, sentence in enumerate(split_sentences(transcript)):
            lower_sentence = sentence.lower()
            if any(keyword in lower_sentence for keyword in ACTION_KEYWORDS):
                now = datetime.now(timezone.utc).isoformat()
                action_items.append(
                    {
                        "id": f"action_{index}",
                        "description": sentence.strip(),
                        "status": "pending",
                        "createdAt": now,
                        "updatedAt": now,
                    }
                )
        return action_items
    except Exception as e:
        logger.error(f"Action item extraction error: {e}", exc_info=True)
        return []
