from .extractor import AudioExtractor, probe_duration

__all__ = ["AudioExtractor", "probe_duration"]
