"""Configuration for the workflow client and run watching."""

from __future__ import annotations

import dataclasses
import os

from .errors import WorkflowConfigError

_DEFAULT_API_URL = "https://api.github.com"
_DEFAULT_API_VERSION = "2022-11-28"
_DEFAULT_TIMEOUT_S = 30.0
_DEFAULT_USER_AGENT = "ghaction-trigger"


def _positive_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise WorkflowConfigError.invalid_number(name, raw) from exc
    if value <= 0:
        raise WorkflowConfigError.invalid_number(name, raw)
    return value


def _positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise WorkflowConfigError.invalid_number(name, raw) from exc
    if value <= 0:
        raise WorkflowConfigError.invalid_number(name, raw)
    return value


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubAPIConfig:
    """Connection settings for the GitHub REST API.

    Attributes
    ----------
    api_url
        REST API base URL; override for GitHub Enterprise Server.
    api_version
        Value sent as ``X-GitHub-Api-Version``.
    timeout_s
        Per-request timeout in seconds.
    user_agent
        ``User-Agent`` header value.

    """

    api_url: str = _DEFAULT_API_URL
    api_version: str = _DEFAULT_API_VERSION
    timeout_s: float = _DEFAULT_TIMEOUT_S
    user_agent: str = _DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls) -> GitHubAPIConfig:
        """Build configuration from environment variables.

        Reads ``GHACTIONTRIGGER_API_URL`` and ``GHACTIONTRIGGER_TIMEOUT_S``
        (a positive number of seconds).

        Raises
        ------
        WorkflowConfigError
            If the timeout is not a positive number.

        """
        api_url = (os.environ.get("GHACTIONTRIGGER_API_URL") or "").strip()
        return cls(
            api_url=api_url or _DEFAULT_API_URL,
            timeout_s=_positive_float("GHACTIONTRIGGER_TIMEOUT_S", _DEFAULT_TIMEOUT_S),
        )


@dataclasses.dataclass(frozen=True, slots=True)
class WatchConfig:
    """Polling cadence for locating and following workflow runs.

    Attributes
    ----------
    poll_interval_s
        Delay between run/job polls while following a run.
    timeout_s
        Upper bound on how long a run is followed.
    match_timeout_s
        How long to look for the run created by a dispatch.
    match_poll_interval_s
        Delay between run listings while looking for that run.
    stale_threshold
        Consecutive polls in which every job has finished but the run has not
        before the run is treated as complete.

    """

    poll_interval_s: float = 2.0
    timeout_s: float = 3600.0
    match_timeout_s: float = 60.0
    match_poll_interval_s: float = 2.0
    stale_threshold: int = 3

    def __post_init__(self) -> None:
        """Reject non-positive settings."""
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if value <= 0:
                raise WorkflowConfigError.invalid_number(field.name, str(value))

    @classmethod
    def from_env(cls) -> WatchConfig:
        """Build configuration from environment variables.

        Reads ``GHACTIONTRIGGER_POLL_INTERVAL_S``,
        ``GHACTIONTRIGGER_WATCH_TIMEOUT_S``,
        ``GHACTIONTRIGGER_MATCH_TIMEOUT_S``,
        ``GHACTIONTRIGGER_MATCH_POLL_INTERVAL_S`` and
        ``GHACTIONTRIGGER_STALE_THRESHOLD``.

        Raises
        ------
        WorkflowConfigError
            If any variable is not a positive number.

        """
        defaults = cls()
        return cls(
            poll_interval_s=_positive_float(
                "GHACTIONTRIGGER_POLL_INTERVAL_S", defaults.poll_interval_s
            ),
            timeout_s=_positive_float(
                "GHACTIONTRIGGER_WATCH_TIMEOUT_S", defaults.timeout_s
            ),
            match_timeout_s=_positive_float(
                "GHACTIONTRIGGER_MATCH_TIMEOUT_S", defaults.match_timeout_s
            ),
            match_poll_interval_s=_positive_float(
                "GHACTIONTRIGGER_MATCH_POLL_INTERVAL_S",
                defaults.match_poll_interval_s,
            ),
            stale_threshold=_positive_int(
                "GHACTIONTRIGGER_STALE_THRESHOLD", defaults.stale_threshold
            ),
        )
