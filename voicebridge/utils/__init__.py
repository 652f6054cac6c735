# Utilities module

from .audio_utils import (
    AudioPayloadError,
    detect_audio_format,
    prepare_upload,
)
from .pagination import (
    HISTORY_PAGE_SIZE,
    LESSONS_PAGE_SIZE,
    filter_lessons,
    lesson_filter_params,
    paginate,
)

__all__ = [
    "AudioPayloadError",
    "detect_audio_format",
    "prepare_upload",
    "HISTORY_PAGE_SIZE",
    "LESSONS_PAGE_SIZE",
    "filter_lessons",
    "lesson_filter_params",
    "paginate",
]
