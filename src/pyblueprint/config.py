"""Workspace configuration for pyblueprint."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyblueprint._constants import DEFAULT_BLUEPRINT_SUFFIX, DEFAULT_STATE_PATH
from pyblueprint.exceptions import BlueprintConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class WorkspaceConfig:
    """Workspace configuration.

    Parameters
    ----------
    blueprints_dir : str
        Directory holding the source blueprints.
    blueprint_suffix : str
        Suffix identifying blueprint files inside ``blueprints_dir``.
    state_path : str
        Location of the persisted state snapshot. Relative paths are
        resolved against the current working directory.
    max_concurrency : int
        Maximum number of plan items applied at the same time.
        ``0`` disables the bound.
    state_pretty : bool
        Indent the state snapshot so it diffs well under version control.
    """

    blueprints_dir: str = "."
    blueprint_suffix: str = DEFAULT_BLUEPRINT_SUFFIX
    state_path: str = DEFAULT_STATE_PATH
    max_concurrency: int = 0
    state_pretty: bool = True

    def __post_init__(self) -> None:
        if self.max_concurrency < 0:
            raise BlueprintConfigError(f"max_concurrency must be >= 0, got {self.max_concurrency}")
        if not self.blueprint_suffix:
            raise BlueprintConfigError("blueprint_suffix must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> WorkspaceConfig:
        """Create configuration from environment variables.

        Reads ``BLUEPRINT_DIR``, ``BLUEPRINT_SUFFIX``, ``BLUEPRINT_STATE_PATH``,
        ``BLUEPRINT_MAX_CONCURRENCY`` and ``BLUEPRINT_STATE_PRETTY``.
        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        WorkspaceConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "BLUEPRINT_DIR": "blueprints_dir",
            "BLUEPRINT_SUFFIX": "blueprint_suffix",
            "BLUEPRINT_STATE_PATH": "state_path",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # max_concurrency is numeric, handle separately
        concurrency_env = env.get("BLUEPRINT_MAX_CONCURRENCY")
        if concurrency_env is not None and "max_concurrency" not in overrides:
            try:
                config_kwargs["max_concurrency"] = int(concurrency_env)
            except ValueError as exc:
                raise BlueprintConfigError(
                    f"BLUEPRINT_MAX_CONCURRENCY must be an integer, got {concurrency_env!r}"
                ) from exc

        if "state_pretty" not in overrides:
            config_kwargs["state_pretty"] = _env_bool(env.get("BLUEPRINT_STATE_PRETTY"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
