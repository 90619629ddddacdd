"""Configuration loader for the topic video pipeline."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

try:
    import yaml  # type: ignore
except ModuleNotFoundError as exc:  # pragma: no cover - import guard
    raise RuntimeError(
        "PyYAML is required. Please install it with `pip install pyyaml`."
    ) from exc


@dataclass
class AppConfig:
    """Wrapper around raw configuration with resolved paths."""

    raw: Dict[str, Any]
    config_path: Path
    project_root: Path
    content_dir: Path
    state_file: Path
    script_file: Path
    templates_dir: Path
    log_file: Path

    @property
    def logging_level(self) -> str:
        level = (
            self.raw.get("logging", {}).get("level")
            or self.raw.get("logging", {}).get("LEVEL")
            or "INFO"
        )
        return str(level).upper()

    def section(self, *keys: str) -> Dict[str, Any]:
        """Return a nested mapping (e.g. ``section("apis", "wikipedia")``), empty if absent."""
        node: Any = self.raw
        for key in keys:
            if not isinstance(node, dict):
                return {}
            node = node.get(key, {})
        return node if isinstance(node, dict) else {}

    def to_debug_dict(self) -> Dict[str, Any]:
        return {
            "content_dir": str(self.content_dir),
            "state_file": str(self.state_file),
            "script_file": str(self.script_file),
            "templates_dir": str(self.templates_dir),
            "log_file": str(self.log_file),
        }

    def dumps(self) -> str:
        """Return a JSON string for diagnostics."""
        return json.dumps(self.to_debug_dict(), ensure_ascii=False, indent=2)


def load_config(path: Path | str, project_root: Path | None = None) -> AppConfig:
    """Load YAML config and resolve key directories."""
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be a mapping: {config_path}")

    return build_config(raw, config_path=config_path, project_root=project_root)


def build_config(
    raw: Dict[str, Any],
    *,
    config_path: Path | None = None,
    project_root: Path | None = None,
) -> AppConfig:
    """Resolve paths for an already parsed configuration mapping."""
    if project_root is not None:
        root = project_root.resolve()
    elif config_path is not None:
        root = config_path.parent
    else:
        root = Path.cwd().resolve()

    output_cfg = raw.get("output", {}) or {}
    content_dir = (root / output_cfg.get("content_directory", "content")).resolve()
    state_file = content_dir / output_cfg.get("state_file", "content.json")
    script_file = content_dir / output_cfg.get("script_file", "after-effects-script.js")
    templates_dir = (root / output_cfg.get("templates_directory", "templates")).resolve()
    log_file_name = raw.get("logging", {}).get("file", "logs/run.log")
    log_file = (root / log_file_name).resolve()

    return AppConfig(
        raw=raw,
        config_path=config_path or root / "config.yaml",
        project_root=root,
        content_dir=content_dir,
        state_file=state_file,
        script_file=script_file,
        templates_dir=templates_dir,
        log_file=log_file,
    )
