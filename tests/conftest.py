"""Pytest fixtures for podlists tests."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from podlists.core.models import Episode, EpisodeDownloadStatus
from podlists.core.periods import EvaluationContext

# Wednesday, 17 January 2024, noon UTC
NOW = datetime(2024, 1, 17, 12, 0, 0, tzinfo=UTC)


def make_episode(**overrides: Any) -> Episode:
    """Build an episode with sensible defaults for any field not given."""
    fields: dict[str, Any] = {
        "id": "ep-1",
        "title": "Test Episode",
        "podcast_title": "Test Podcast",
        "pub_date": datetime(2024, 1, 15, 12, 0, 0, tzinfo=UTC),
        "date_added": datetime(2024, 1, 15, 13, 0, 0, tzinfo=UTC),
        "duration": 3600.0,
        "description": "A test episode",
    }
    fields.update(overrides)
    return Episode(**fields)


@pytest.fixture
def context() -> EvaluationContext:
    """Evaluation context pinned to a fixed moment."""
    return EvaluationContext(now=NOW)


@pytest.fixture
def episode_factory() -> Callable[..., Episode]:
    return make_episode


@pytest.fixture
def sample_episode() -> Episode:
    """Create a sample episode for testing."""
    return make_episode()


@pytest.fixture
def sample_episodes() -> list[Episode]:
    """A small library covering every play and download state."""
    return [
        make_episode(
            id="news-1",
            title="Morning News Roundup",
            podcast_title="Daily Briefing",
            pub_date=datetime(2024, 1, 17, 6, 0, tzinfo=UTC),
            duration=900.0,
            rating=3,
            download_status=EpisodeDownloadStatus.DOWNLOADED,
            description="Headlines and weather",
        ),
        make_episode(
            id="interview-1",
            title="An Interview with a Chef",
            podcast_title="Food Talk",
            pub_date=datetime(2024, 1, 10, 18, 0, tzinfo=UTC),
            duration=5400.0,
            rating=5,
            playback_position=1200,
            download_status=EpisodeDownloadStatus.DOWNLOADED,
            description="We talk about knives and news from the kitchen",
        ),
        make_episode(
            id="history-1",
            title="The Fall of Rome",
            podcast_title="History Hour",
            pub_date=datetime(2023, 12, 20, 9, 0, tzinfo=UTC),
            duration=4200.0,
            rating=4,
            is_played=True,
            is_favorited=True,
        ),
        make_episode(
            id="tech-1",
            title="Tech Weekly",
            podcast_title="Gadgets",
            pub_date=None,
            duration=None,
            rating=None,
            description=None,
            is_archived=True,
            download_status=EpisodeDownloadStatus.FAILED,
        ),
    ]
