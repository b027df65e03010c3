"""Playback of audio answers with an on-disk cache of decoded attachments."""

import hashlib
from pathlib import Path
from typing import List, Optional, Tuple
from PySide6.QtCore import QObject, Signal
from PySide6.QtMultimedia import QMediaPlayer, QAudioOutput
from PySide6.QtCore import QUrl

from .config import config
from .files import attachment_bytes
from ..engine.errors import ValidationError
from ..engine.models import Attachment

EXTENSIONS = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/ogg": ".ogg",
    "audio/webm": ".webm",
    "audio/mp4": ".m4a",
}


class AttachmentPlayer(QObject):
    """Plays audio attachments; decoded files are cached by content hash."""

    # Signals
    audio_playing = Signal()
    audio_finished = Signal()
    audio_error = Signal(str)

    def __init__(self, cache_dir: Optional[Path] = None):
        super().__init__()

        self.enabled = config.is_audio_enabled()

        # Cache setup
        self.cache_dir = Path(cache_dir) if cache_dir else config.cache_dir
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        # Audio player
        self.media_player = QMediaPlayer()
        self.audio_output = QAudioOutput()
        self.media_player.setAudioOutput(self.audio_output)

        # Connect signals
        self.media_player.playbackStateChanged.connect(self._on_playback_state_changed)

    def set_enabled(self, enabled: bool):
        """Enable or disable automatic playback."""
        self.enabled = enabled
        config.set_audio_enabled(enabled)

    def toggle_enabled(self) -> bool:
        """Toggle playback and return the new state."""
        self.set_enabled(not self.enabled)
        return self.enabled

    def cache_path(self, attachment: Attachment) -> Path:
        """Where the decoded attachment lives on disk."""
        digest = hashlib.md5(attachment.data.encode("ascii", "ignore")).hexdigest()
        suffix = Path(attachment.name).suffix or EXTENSIONS.get(attachment.type, ".bin")
        return self.cache_dir / f"{digest}{suffix}"

    def play(self, attachment: Attachment, force: bool = False):
        """
        Play an audio attachment.

        Args:
            attachment: Attachment with an audio/* MIME type
            force: If True, play even if playback is disabled
        """
        if not (self.enabled or force):
            return

        try:
            cache_file = self.cache_path(attachment)
            if not cache_file.exists():
                cache_file.write_bytes(attachment_bytes(attachment))
        except (ValidationError, OSError) as e:
            self._on_error(f"Could not decode '{attachment.name}': {e}")
            return

        self.media_player.setSource(QUrl.fromLocalFile(str(cache_file)))
        self.media_player.play()
        self.audio_playing.emit()

    def _on_playback_state_changed(self, state):
        if state == QMediaPlayer.PlaybackState.StoppedState:
            self.audio_finished.emit()

    def _on_error(self, error_msg: str):
        print(f"Audio Error: {error_msg}")
        self.audio_error.emit(error_msg)

    def stop(self):
        self.media_player.stop()

    def _cached_files(self) -> List[Path]:
        if not self.cache_dir.exists():
            return []
        return [f for f in self.cache_dir.iterdir() if f.is_file()]

    def cache_usage(self) -> Tuple[int, int]:
        """(file count, total bytes) of decoded attachments on disk."""
        files = self._cached_files()
        return len(files), sum(f.stat().st_size for f in files)

    def clear_cache(self) -> int:
        """Delete decoded attachments; returns how many files were removed."""
        self.stop()
        files = self._cached_files()
        for cached in files:
            cached.unlink()
        return len(files)


_player: Optional[AttachmentPlayer] = None


def attachment_player() -> AttachmentPlayer:
    """Shared player; created lazily because Qt needs a QApplication first."""
    global _player
    if _player is None:
        _player = AttachmentPlayer()
    return _player
