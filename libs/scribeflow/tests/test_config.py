from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from scribeflow.config import LoggingSettings, QueueConfig, SegmentationConfig, Settings, TranscriptionConfig
from scribeflow.exceptions import ConfigurationError
from scribeflow.utils.logging_setup import setup_logging


def test_defaults_match_groq_whisper_setup(settings: Settings) -> None:
    assert settings.transcription.base_url == "https://api.groq.com/openai/v1"
    assert settings.transcription.model == "whisper-large-v3-turbo"
    assert settings.transcription.language == "nl"
    assert settings.max_segment_bytes == 25 * 1024 * 1024
    assert settings.queue.max_concurrent == 2
    assert settings.queue.max_retries == 3
    assert settings.queue.base_retry_delay_s == 2.0
    assert settings.queue.job_timeout_s is None
    assert settings.uses_queue is False


def test_env_prefixes(monkeypatch) -> None:
    monkeypatch.setenv("TRANSCRIPTION_LANGUAGE", "en")
    monkeypatch.setenv("SEGMENTATION_DECODER", "wav")
    monkeypatch.setenv("QUEUE_MAX_CONCURRENT", "4")
    monkeypatch.setenv("QUEUE_BACKOFF", "exponential_jitter")

    assert TranscriptionConfig(_env_file=None).language == "en"
    assert SegmentationConfig(_env_file=None).decoder == "wav"
    queue = QueueConfig(_env_file=None)
    assert queue.max_concurrent == 4
    assert queue.backoff == "exponential_jitter"


def test_non_positive_job_timeout_is_rejected() -> None:
    with pytest.raises((ConfigurationError, ValidationError)):
        QueueConfig(_env_file=None, job_timeout_s=0)


def test_invalid_concurrency_is_rejected() -> None:
    with pytest.raises(ValidationError):
        QueueConfig(_env_file=None, max_concurrent=0)


def test_setup_logging_configures_scribeflow_logger_once(tmp_path) -> None:
    settings = Settings(
        _env_file=None,
        log_dir=str(tmp_path / "logs"),
        logging=LoggingSettings(_env_file=None, file="scribeflow.log"),
    )
    logger = logging.getLogger("scribeflow")
    previous = (logger.handlers, logger.propagate, logger.level)
    if hasattr(logger, "_scribeflow_configured"):
        delattr(logger, "_scribeflow_configured")
    try:
        setup_logging(settings)
        assert len(logger.handlers) == 2
        assert (tmp_path / "logs").is_dir()

        setup_logging(settings)
        assert len(logger.handlers) == 2
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers, logger.propagate = previous[0], previous[1]
        logger.setLevel(previous[2])
        delattr(logger, "_scribeflow_configured")


def test_setup_logging_level_override_and_quiet_loggers(tmp_path) -> None:
    settings = Settings(
        _env_file=None,
        log_dir=str(tmp_path / "logs"),
        logging=LoggingSettings(_env_file=None, level="WARNING", quiet_loggers=["httpx"]),
    )
    logger = logging.getLogger("scribeflow")
    httpx_logger = logging.getLogger("httpx")
    previous = (logger.handlers, logger.propagate, logger.level, httpx_logger.level)
    had_flag = hasattr(logger, "_scribeflow_configured")
    try:
        httpx_logger.setLevel(logging.NOTSET)
        setup_logging(settings, force=True)
        assert logger.level == logging.WARNING
        assert httpx_logger.level == logging.WARNING

        setup_logging(settings, level="debug")
        assert logger.level == logging.WARNING

        setup_logging(settings, level="debug", force=True)
        assert logger.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in logger.handlers)
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers, logger.propagate = previous[0], previous[1]
        logger.setLevel(previous[2])
        httpx_logger.setLevel(previous[3])
        if not had_flag:
            delattr(logger, "_scribeflow_configured")
