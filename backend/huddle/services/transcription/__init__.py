from .formatter import format_transcript
from .recognizer import (
    AsyncSpeechRecognizer,
    SpeechRecognizer,
    SyncSpeechRecognizer,
    build_recognizers,
)
from .strategy import RecognitionStrategy, select_strategy

__all__ = [
    "AsyncSpeechRecognizer",
    "RecognitionStrategy",
    "SpeechRecognizer",
    "SyncSpeechRecognizer",
    "build_recognizers",
    "format_transcript",
    "select_strategy",
]
