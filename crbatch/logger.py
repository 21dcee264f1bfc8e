"""yt-dlp logger that adds series context and remembers errors."""

import sys
from typing import List, Optional


class SeriesLogger:
    """Logger handed to yt-dlp while one series is fetched."""

    # Messages yt-dlp emits for episodes that are simply not downloadable
    # with the current account; they are reported but not counted as errors.
    SKIPPED_FRAGMENTS = (
        "premium",
        "already been recorded in the archive",
        "does not pass filter",
    )

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose
        self.current_address: Optional[str] = None
        self.current_episode: Optional[str] = None
        self.errors: List[str] = []
        self.skipped = 0

    def set_context(self, address: Optional[str], episode: Optional[str] = None) -> None:
        self.current_address = address
        self.current_episode = episode

    def set_episode(self, episode: Optional[str]) -> None:
        self.current_episode = episode

    @property
    def last_error(self) -> Optional[str]:
        return self.errors[-1] if self.errors else None

    def _format_with_context(self, message: str) -> str:
        context_parts = []
        if self.current_address:
            context_parts.append(f"address={self.current_address}")
        if self.current_episode:
            context_parts.append(f"episode={self.current_episode}")
        if context_parts:
            return f"[{' '.join(context_parts)}] {message}"
        return message

    def _print(self, message: str, file=sys.stdout) -> None:
        print(self._format_with_context(message), file=file)

    def _is_skip(self, text: str) -> bool:
        lowered = text.lower()
        return any(fragment in lowered for fragment in self.SKIPPED_FRAGMENTS)

    @staticmethod
    def _ensure_text(message) -> str:
        if isinstance(message, bytes):
            return message.decode("utf-8", "ignore")
        return str(message)

    def debug(self, message) -> None:  # yt-dlp calls this
        if self.verbose:
            self._print(self._ensure_text(message))

    def info(self, message) -> None:
        self._print(self._ensure_text(message))

    def warning(self, message) -> None:
        self._print(self._ensure_text(message), file=sys.stderr)

    def error(self, message) -> None:
        text = self._ensure_text(message)
        self._print(text, file=sys.stderr)
        if self._is_skip(text):
            self.skipped += 1
            return
        self.errors.append(text)
