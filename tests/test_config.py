"""Tests for configuration loading.

Local config overrides global config, which overrides defaults; the
PODLISTS_TIMEZONE environment variable overrides the configured time zone.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from podlists.core.config import (
    TIMEZONE_ENV_VAR,
    Config,
    ConfigError,
    load_config,
)
from podlists.core.periods import Weekday
from podlists.core.rules import SortBy


@pytest.fixture(autouse=True)
def _clear_timezone_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(TIMEZONE_ENV_VAR, raising=False)


@pytest.fixture
def paths(tmp_path: Path) -> tuple[Path, Path]:
    return tmp_path / "local" / "config", tmp_path / "global" / "config"


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class TestDefaults:
    def test_defaults_without_files(self, paths: tuple[Path, Path]) -> None:
        local, global_ = paths

        config = load_config(local, global_, auto_create_local=False)

        assert config.evaluation.week_start is Weekday.MONDAY
        assert config.evaluation.timezone == ""
        assert config.smart_lists.default_sort is SortBy.PUB_DATE_NEWEST
        assert config.smart_lists.refresh_interval == 300.0
        assert config.smart_lists.episode_limit is None
        assert not config.search.include_archived
        assert not local.exists()

    def test_creates_local_config(self, paths: tuple[Path, Path]) -> None:
        local, global_ = paths

        load_config(local, global_)

        assert local.exists()
        assert "[evaluation]" in local.read_text()
        # the generated file loads back to the defaults
        assert load_config(local, global_) == Config()

    def test_does_not_create_when_global_exists(self, paths: tuple[Path, Path]) -> None:
        local, global_ = paths
        write(global_, '[evaluation]\nweek_start = "sunday"\n')

        load_config(local, global_)

        assert not local.exists()


class TestPriority:
    def test_global_overrides_defaults(self, paths: tuple[Path, Path]) -> None:
        local, global_ = paths
        write(global_, '[smart_lists]\ndefault_sort = "title"\nmax_episodes = 25\n')

        config = load_config(local, global_, auto_create_local=False)

        assert config.smart_lists.default_sort is SortBy.TITLE
        assert config.smart_lists.episode_limit == 25

    def test_local_overrides_global(self, paths: tuple[Path, Path]) -> None:
        local, global_ = paths
        write(global_, '[evaluation]\nweek_start = "sunday"\ntimezone = "UTC"\n')
        write(local, '[evaluation]\nweek_start = "saturday"\n')

        config = load_config(local, global_, auto_create_local=False)

        assert config.evaluation.week_start is Weekday.SATURDAY
        # keys missing locally still come from the global file
        assert config.evaluation.timezone == "UTC"

    @settings(max_examples=30, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(
        st.sampled_from(Weekday),
        st.sampled_from(Weekday),
        st.booleans(),
    )
    def test_local_always_wins(
        self,
        tmp_path: Path,
        local_day: Weekday,
        global_day: Weekday,
        include_archived: bool,
    ) -> None:
        base = tmp_path / f"{local_day.value}-{global_day.value}-{include_archived}"
        local = write(
            base / "local",
            f'[evaluation]\nweek_start = "{local_day.value}"\n'
            f"[search]\ninclude_archived = {str(include_archived).lower()}\n",
        )
        global_ = write(base / "global", f'[evaluation]\nweek_start = "{global_day.value}"\n')

        config = load_config(local, global_, auto_create_local=False)

        assert config.evaluation.week_start is local_day
        assert config.search.include_archived is include_archived


class TestValidation:
    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ("[evaluation\n", "Invalid TOML"),
            ('[evaluation]\nweek_start = "funday"\n', "week_start"),
            ("[evaluation]\ntimezone = 5\n", "timezone"),
            ('[smart_lists]\ndefault_sort = "random"\n', "default_sort"),
            ("[smart_lists]\nrefresh_interval = -1\n", "refresh_interval"),
            ("[smart_lists]\nrefresh_interval = true\n", "refresh_interval"),
            ("[smart_lists]\nmax_episodes = 2.5\n", "max_episodes"),
            ('[search]\ninclude_archived = "yes"\n', "include_archived"),
            ("evaluation = 3\n", "must be a table"),
        ],
    )
    def test_invalid_values(
        self, paths: tuple[Path, Path], content: str, message: str
    ) -> None:
        local, global_ = paths
        write(local, content)

        with pytest.raises(ConfigError, match=message):
            load_config(local, global_, auto_create_local=False)

    def test_unknown_keys_are_logged(
        self, paths: tuple[Path, Path], caplog: pytest.LogCaptureFixture
    ) -> None:
        local, global_ = paths
        write(local, "[evaluation]\ncolour = 1\n[extras]\nx = 1\n")

        with caplog.at_level(logging.WARNING, logger="podlists.core.config"):
            load_config(local, global_, auto_create_local=False)

        assert "evaluation.colour" in caplog.text
        assert "[extras]" in caplog.text


class TestEvaluationContext:
    def test_pinned_now_in_configured_zone(self, paths: tuple[Path, Path]) -> None:
        local, global_ = paths
        write(local, '[evaluation]\ntimezone = "UTC"\nweek_start = "sunday"\n')
        config = load_config(local, global_, auto_create_local=False)
        now = datetime(2024, 1, 17, 12, tzinfo=timezone(timedelta(hours=5)))

        context = config.evaluation_context(now)

        assert context.now == now
        assert context.now.utcoffset() == timedelta(0)
        assert context.week_start is Weekday.SUNDAY

    def test_environment_overrides_time_zone(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(TIMEZONE_ENV_VAR, "UTC")
        config = Config()

        assert config.get_timezone_name() == "UTC"
        assert config.evaluation_context().now.utcoffset() == timedelta(0)

    def test_unknown_time_zone(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(TIMEZONE_ENV_VAR, "Mars/Olympus_Mons")

        with pytest.raises(ConfigError, match="Unknown time zone"):
            Config().evaluation_context()

    def test_system_local_time_by_default(self) -> None:
        context = Config().evaluation_context(datetime(2024, 1, 17, 12, tzinfo=UTC))

        assert context.now == datetime(2024, 1, 17, 12, tzinfo=UTC)
        assert context.week_start is Weekday.MONDAY
