from __future__ import annotations

import pytest

from huddle.services.transcription import RecognitionStrategy, format_transcript, select_strategy

from conftest import make_result

MB = 1024 * 1024


@pytest.mark.parametrize(
    "duration, size, expected",
    [
        (40.0, 5 * MB, RecognitionStrategy.SYNC),
        (50.0, 10 * MB, RecognitionStrategy.SYNC),
        (50.1, 1 * MB, RecognitionStrategy.ASYNC),
        (30.0, 10 * MB + 1, RecognitionStrategy.ASYNC),
        (1800.0, 60 * MB, RecognitionStrategy.ASYNC),
        (None, 1024, RecognitionStrategy.ASYNC),
    ],
)
def test_select_strategy_thresholds(duration, size, expected):
    assert select_strategy(duration, size) == expected


def test_select_strategy_custom_limits():
    assert select_strategy(20.0, 100, max_sync_duration=10.0) == RecognitionStrategy.ASYNC
    assert select_strategy(5.0, 100, max_sync_size=50) == RecognitionStrategy.ASYNC
    assert select_strategy(5.0, 40, max_sync_duration=10.0, max_sync_size=50) == RecognitionStrategy.SYNC


def test_format_transcript_marks_speaker_changes():
    results = [make_result(["hi", "there", "ok", "go", "bye"], tags=[0, 0, 1, 1, 0])]
    assert format_transcript(results) == "Speaker 0: hi there \n\nSpeaker 1: ok go \n\nSpeaker 0: bye"


def test_format_transcript_carries_speaker_across_segments():
    results = [
        make_result(["Morning", "all."], tags=[1, 1]),
        make_result(["Still", "me."], tags=[1, 1]),
        make_result(["My", "turn."], tags=[2, 2]),
    ]
    transcript = format_transcript(results)

    assert transcript == "Speaker 1: Morning all. Still me. \n\nSpeaker 2: My turn."
    assert transcript.count("Speaker 1:") == 1


def test_format_transcript_uses_plain_text_without_words():
    results = [
        make_result([], transcript="no diarization here"),
        make_result(["then", "words"], tags=[3, 3]),
    ]
    assert format_transcript(results) == "no diarization here \n\nSpeaker 3: then words"


def test_format_transcript_empty_results():
    assert format_transcript([]) == ""
