"""Exception types raised by the meeting processing pipeline."""


class PipelineError(Exception):
    """Base class for every error the pipeline records on a meeting."""


class TransferError(PipelineError):
    """Object storage download/upload failed."""


class TranscodingError(PipelineError):
    """Audio extraction produced no usable audio, or probing failed."""


class RecognitionError(PipelineError):
    """Speech recognition returned no results."""


class InsightError(PipelineError):
    """The language model returned missing or malformed JSON."""


class PersistenceError(PipelineError):
    """Writing the meeting record or transcript artifact failed."""


class PipelineTimeoutError(PipelineError):
    """The run exceeded its wall-clock budget."""


class MeetingValidationError(PipelineError):
    """Request rejected before any work began. The meeting is left untouched."""


class MissingMeetingIdError(MeetingValidationError):
    pass


class MeetingNotFoundError(MeetingValidationError):
    pass


class MissingRecordingError(MeetingValidationError):
    pass


class InvalidRecordingReferenceError(MeetingValidationError):
    pass


class RecordingNotFoundError(MeetingValidationError):
    pass


class MeetingConflictError(MeetingValidationError):
    """The meeting is already being processed."""


class PollingTimeoutError(Exception):
    """Status polling gave up before the meeting reached a terminal state."""
