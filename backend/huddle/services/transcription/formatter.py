from typing import Iterable


def format_transcript(results: Iterable) -> str:
    """
    Flatten recognition results into one transcript with inline speaker turns.

    Only the top alternative of each segment is used. A "Speaker N: " marker is
    written whenever the word-level speaker tag changes, including the first
    word (tag 0 counts as a speaker). Segments without word tokens contribute
    their plain transcript text.
    """
    parts = []
    current_speaker = -1

    for result in results:
        alternatives = getattr(result, "alternatives", None)
        if not alternatives:
            continue
        alternative = alternatives[0]

        words = getattr(alternative, "words", None)
        if words:
            for word in words:
                speaker_tag = getattr(word, "speaker_tag", 0) or 0
                if speaker_tag != current_speaker:
                    current_speaker = speaker_tag
                    parts.append(f"\n\nSpeaker {speaker_tag}: ")
                parts.append((getattr(word, "word", "") or "") + " ")
        else:
            parts.append((getattr(alternative, "transcript", "") or "") + " ")

    return "".join(parts).strip()
