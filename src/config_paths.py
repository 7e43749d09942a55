"""Locate the configuration file and the folder that receives reconciled outputs.

The config path honours ``BSI_FORECAST_CONFIG_PATH``. Run directories are
sanitised into relative sub-folders. :func:`resolve_output_directory` combines
``results.output_directory`` with an optional run directory, so the CLI and the
tests can write the forecast tables outside the repository.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

REPO_ROOT = Path(__file__).resolve().parents[1]

CONFIG_ENV_VAR = "BSI_FORECAST_CONFIG_PATH"


def get_config_path(default: Path | None = None) -> Path:
    """Return the configuration path, honouring BSI_FORECAST_CONFIG_PATH when set."""

    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    if default is not None:
        return default.resolve()
    return (REPO_ROOT / "config.yaml").resolve()


def sanitize_run_directory(value: str | None) -> str | None:
    """Return a safe run-directory component (no absolutes, no parent traversals)."""

    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    path = Path(candidate)
    if path.is_absolute():
        raise ValueError("results.run_directory must be a relative path.")
    parts = [part for part in path.parts if part not in ("", ".", "..")]
    if not parts:
        return None
    return "/".join(parts)


def get_results_run_directory(config: Mapping[str, object] | None) -> str | None:
    """Extract ``results.run_directory`` from the root configuration mapping."""

    if not isinstance(config, Mapping):
        return None
    results_cfg = config.get("results")
    if not isinstance(results_cfg, Mapping):
        return None
    raw_value = results_cfg.get("run_directory")
    if raw_value is None:
        return None
    return sanitize_run_directory(str(raw_value))


def resolve_output_directory(
    config: Mapping[str, object] | None,
    run_directory: str | None = None,
    *,
    repo_root: Path | None = None,
) -> Path:
    """Return ``results/[<run_directory>/]`` for the reconciled outputs.

    ``results.output_directory`` overrides the base folder; relative paths are
    resolved against ``repo_root``.
    """

    root = repo_root or REPO_ROOT
    base = "results"
    if isinstance(config, Mapping) and isinstance(config.get("results"), Mapping):
        base = str(config["results"].get("output_directory", base))
    path = Path(base)
    if not path.is_absolute():
        path = root / path
    run_dir = sanitize_run_directory(run_directory) or get_results_run_directory(config)
    if run_dir:
        path = path / run_dir
    return path.resolve()


__all__ = [
    "CONFIG_ENV_VAR",
    "REPO_ROOT",
    "get_config_path",
    "get_results_run_directory",
    "resolve_output_directory",
    "sanitize_run_directory",
]
