"""
Helpers for the opaque audio payload handed over by the recorder.

The data-access layer never decodes audio. It only checks that something was
recorded and works out a filename and content type for the multipart upload.
"""

import logging
from typing import Tuple

from voicebridge.errors import DataAccessError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class AudioPayloadError(DataAccessError):
    """Raised when the recorded payload cannot be uploaded."""

    default_message = "No audio was recorded"


def detect_audio_format(audio_data: bytes) -> Tuple[str, str]:
    """
    Guess the container format from the payload's magic bytes.

    Args:
        audio_data: Recorded audio as bytes

    Returns:
        Tuple of (file extension, content type); unknown payloads map to
        ("bin", "application/octet-stream")
    """
    if audio_data[:4] == b'RIFF' and audio_data[8:12] == b'WAVE':
        return "wav", "audio/wav"
    if audio_data[:4] == b'OggS':
        return "ogg", "audio/ogg"
    if audio_data[:4] == b'\x1aE\xdf\xa3':
        return "webm", "audio/webm"
    if audio_data[:3] == b'ID3' or audio_data[:2] in (b'\xff\xfb', b'\xff\xf3', b'\xff\xf2'):
        return "mp3", "audio/mpeg"
    if audio_data[4:8] == b'ftyp':
        return "m4a", "audio/mp4"
    return "bin", DEFAULT_CONTENT_TYPE


def prepare_upload(audio_data: bytes, filename: str = "recording") -> Tuple[str, bytes, str]:
    """
    Build the ``file`` part of a voice-upload form.

    Args:
        audio_data: Recorded audio as bytes
        filename: Base name for the uploaded file (an extension is added if missing)

    Returns:
        Tuple of (filename, data, content type) as accepted by httpx ``files=``

    Raises:
        AudioPayloadError: If the payload is empty
    """
    if not audio_data:
        raise AudioPayloadError()

    extension, content_type = detect_audio_format(audio_data)
    if "." not in filename:
        filename = f"{filename}.{extension}"

    logger.debug(f"Prepared {len(audio_data)} bytes of {content_type} for upload as {filename}")
    return filename, audio_data, content_type
