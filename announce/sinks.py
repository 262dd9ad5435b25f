"""Announcement sinks that render verdicts as speech or log output."""

from __future__ import annotations

import shutil
import subprocess
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from contracts import Verdict
from exceptions import AnnouncementError
from log_config.logger import get_logger

logger = get_logger(__name__)


class AnnouncementSink(ABC):
    """Renders a verdict. Callers do not consume a return value."""

    @abstractmethod
    def announce(self, verdict: Verdict) -> None:
        """Announce a verdict."""

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for pending announcements. Returns True when nothing is pending."""
        return True

    def close(self) -> None:
        return None


class SpeechEngine(ABC):
    @abstractmethod
    def speak(self, text: str) -> None:
        """Speak ``text``, blocking until done."""


class CommandSpeechEngine(SpeechEngine):
    """Speaks through a text-to-speech command line tool.

    With no explicit command, ``say`` (macOS) is preferred, then
    ``espeak-ng`` and ``espeak``.
    """

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        language: str = "en-US",
        voice: Optional[str] = None,
        timeout_s: float = 10.0,
    ) -> None:
        self.timeout_s = timeout_s
        self.command: List[str] = list(command) if command else self._detect_command(language, voice)

    @staticmethod
    def _detect_command(language: str, voice: Optional[str]) -> List[str]:
        if shutil.which("say"):
            return ["say", "-v", voice] if voice else ["say"]
        for binary in ("espeak-ng", "espeak"):
            if shutil.which(binary):
                return [binary, "-v", voice or language.lower()]
        raise AnnouncementError("No text-to-speech command found (tried say, espeak-ng, espeak)")

    def speak(self, text: str) -> None:
        try:
            subprocess.run(
                [*self.command, text],
                check=True,
                capture_output=True,
                timeout=self.timeout_s,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise AnnouncementError(f"Speech command {self.command[0]} failed: {e}") from e


class SpeechAnnouncer(AnnouncementSink):
    """Speaks "Strike!" or "Ball!"; INDETERMINATE stays silent."""

    def __init__(self, engine: SpeechEngine) -> None:
        self._engine = engine

    def announce(self, verdict: Verdict) -> None:
        text = verdict.utterance
        if text is None:
            return
        logger.debug(f"Speaking {text!r}")
        self._engine.speak(text)


class LogAnnouncer(AnnouncementSink):
    def announce(self, verdict: Verdict) -> None:
        if verdict.utterance is None:
            return
        logger.info(f"Call: {verdict.utterance}")


class NullAnnouncer(AnnouncementSink):
    def announce(self, verdict: Verdict) -> None:
        return None


class RecordingAnnouncer(AnnouncementSink):
    """Keeps every announced verdict in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._verdicts: List[Verdict] = []

    def announce(self, verdict: Verdict) -> None:
        with self._lock:
            self._verdicts.append(verdict)

    @property
    def verdicts(self) -> List[Verdict]:
        with self._lock:
            return list(self._verdicts)
