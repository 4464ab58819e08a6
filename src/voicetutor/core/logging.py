"""
Logging setup.

Everything logs under the ``voicetutor`` logger. Capture and playback
log every recognition and utterance event at DEBUG, so their level can
be set apart from the rest of the package (``voice_log_level``).
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from voicetutor.config.schema import TutorConfig

PACKAGE_LOGGER = "voicetutor"
VOICE_LOGGERS = ("voice.capture", "voice.playback")
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(config: TutorConfig) -> logging.Logger:
    """
    Install console (and optional file) handlers on the package logger.

    Safe to call again after a config reload; previous handlers are closed.

    Args:
        config: Application configuration

    Returns:
        The ``voicetutor`` logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(config.log_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Transcripts and replies can contain markup-like brackets
    logger.addHandler(
        RichHandler(
            console=Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
    )

    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    # NOTSET defers to the package level
    voice_level = config.voice_log_level or logging.NOTSET
    for name in VOICE_LOGGERS:
        get_logger(name).setLevel(voice_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Component logger, e.g. ``get_logger("voice.capture")`` -> ``voicetutor.voice.capture``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
