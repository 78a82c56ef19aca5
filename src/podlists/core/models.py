"""Episode data model consumed by smart lists and search."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum


class EpisodeDownloadStatus(Enum):
    """Download state of an episode."""

    NOT_DOWNLOADED = "not_downloaded"
    DOWNLOADING = "downloading"
    PAUSED = "paused"
    DOWNLOADED = "downloaded"
    FAILED = "failed"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class EpisodePlayStatus(Enum):
    """Play state derived from an episode's played flag and position."""

    UNPLAYED = "unplayed"
    IN_PROGRESS = "in_progress"
    PLAYED = "played"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass(frozen=True)
class Episode:
    """Represents a podcast episode in the user's library."""

    id: str
    title: str
    podcast_title: str = ""
    podcast_id: str | None = None
    pub_date: datetime | None = None
    date_added: datetime = field(default_factory=lambda: datetime.now(UTC))
    duration: float | None = None  # seconds
    playback_position: int = 0  # seconds
    rating: int | None = None  # 1-5 stars, None if unrated
    is_played: bool = False
    is_favorited: bool = False
    is_bookmarked: bool = False
    is_archived: bool = False
    download_status: EpisodeDownloadStatus = EpisodeDownloadStatus.NOT_DOWNLOADED
    description: str | None = None

    def __str__(self) -> str:
        """Return a formatted string representation."""
        if self.pub_date is None:
            return self.title
        return f"{self.title} ({self.pub_date.strftime('%Y-%m-%d')})"

    @property
    def is_in_progress(self) -> bool:
        """Whether playback has started but not finished."""
        return self.playback_position > 0 and not self.is_played

    @property
    def is_downloaded(self) -> bool:
        return self.download_status is EpisodeDownloadStatus.DOWNLOADED

    @property
    def play_status(self) -> EpisodePlayStatus:
        """Collapse the played flag and playback position into one status."""
        if not self.is_played and self.playback_position == 0:
            return EpisodePlayStatus.UNPLAYED
        if self.is_in_progress:
            return EpisodePlayStatus.IN_PROGRESS
        return EpisodePlayStatus.PLAYED

    @property
    def playback_progress(self) -> float:
        """Return playback progress between 0.0 and 1.0."""
        if not self.duration or self.duration <= 0:
            return 0.0
        return min(self.playback_position / self.duration, 1.0)

    @property
    def duration_formatted(self) -> str:
        """Return duration as HH:MM:SS string."""
        if self.duration is None:
            return "Unknown"

        hours, remainder = divmod(int(self.duration), 3600)
        minutes, seconds = divmod(remainder, 60)

        if hours > 0:
            return f"{hours:d}:{minutes:02d}:{seconds:02d}"
        return f"{minutes:d}:{seconds:02d}"

    def with_changes(self, **changes: object) -> Episode:
        """Return a copy of this episode with the given fields replaced."""
        return replace(self, **changes)
