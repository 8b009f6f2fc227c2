"""Canonical error codes attached to failures."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"
    INVALID_INPUT = "INVALID_INPUT"

    DECODE_FAILED = "DECODE_FAILED"
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
    PROVIDER_FAILED = "PROVIDER_FAILED"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"
