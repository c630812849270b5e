"""Configuration management for Remedy (remedy.toml parsing + defaults)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    try:
        import tomli as tomllib  # type: ignore[no-redef]
    except ImportError:
        tomllib = None  # type: ignore[assignment]


CONFIG_FILENAME = "remedy.toml"


@dataclass
class AIConfig:
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4000


@dataclass
class FixConfig:
    max_retries: int = 3
    history_size: int = 10
    line_tolerance: int = 5
    context_before: int = 10
    context_after: int = 20
    ai: AIConfig = field(default_factory=AIConfig)


@dataclass
class ToolsConfig:
    timeout_seconds: float = 120.0
    semgrep_path: str = "semgrep"
    semgrep_config: str = "auto"
    cargo_path: str = "cargo"
    mvn_path: str = "mvn"


@dataclass
class RemedyConfig:
    """Complete Remedy configuration."""

    exclude: list[str] = field(
        default_factory=lambda: [
            ".git/",
            "build/",
            "target/",
            "node_modules/",
            "venv/",
            ".venv/",
        ]
    )
    fix: FixConfig = field(default_factory=FixConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)


def load_config(project_path: Path | None = None) -> RemedyConfig:
    """Load configuration from remedy.toml if present, otherwise return defaults."""
    config = RemedyConfig()

    if project_path is None:
        project_path = Path.cwd()

    config_file = project_path / CONFIG_FILENAME
    if not config_file.exists():
        return config

    if tomllib is None:
        return config

    with open(config_file, "rb") as f:
        data = tomllib.load(f)

    if "general" in data:
        gen = data["general"]
        if "exclude" in gen:
            config.exclude = gen["exclude"]

    if "fix" in data:
        fx = data["fix"]
        for attr in ("max_retries", "history_size", "line_tolerance", "context_before", "context_after"):
            if attr in fx:
                setattr(config.fix, attr, int(fx[attr]))
        ai = fx.get("ai", {})
        if "model" in ai:
            config.fix.ai.model = ai["model"]
        if "max_tokens" in ai:
            config.fix.ai.max_tokens = int(ai["max_tokens"])

    if "tools" in data:
        t = data["tools"]
        if "timeout_seconds" in t:
            config.tools.timeout_seconds = float(t["timeout_seconds"])
        for attr in ("semgrep_path", "semgrep_config", "cargo_path", "mvn_path"):
            if attr in t:
                setattr(config.tools, attr, t[attr])

    return config
