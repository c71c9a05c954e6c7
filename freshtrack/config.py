"""TOML configuration loader for freshtrack."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

from .resolver import DEFAULT_FUZZY_THRESHOLD, CanonicalNameResolver, normalize
from .shelf_life import DEFAULT_DAYS, ShelfLifeTable

_DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5-20250929"
_DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"


@dataclass
class DatabaseConfig:
    path: str = "~/.config/freshtrack/pantry.db"


@dataclass
class ResolverConfig:
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    min_import_confidence: float = 0.0


@dataclass
class ShelfLifeConfig:
    default_days: int = DEFAULT_DAYS
    days: dict[str, int] = field(default_factory=dict)


@dataclass
class RankingConfig:
    top_n: int = 10


@dataclass
class ClaudeConfig:
    api_key: str = ""
    model: str = _DEFAULT_CLAUDE_MODEL


@dataclass
class GeminiConfig:
    api_key: str = ""
    model: str = _DEFAULT_GEMINI_MODEL


@dataclass
class OCRConfig:
    backend: str = "claude"
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    gemini: GeminiConfig = field(default_factory=GeminiConfig)


@dataclass
class RecipesConfig:
    backend: str = "claude"  # "claude" or "fallback"
    model: str = _DEFAULT_CLAUDE_MODEL
    api_key: str = ""


@dataclass
class FreshtrackConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    shelf_life: ShelfLifeConfig = field(default_factory=ShelfLifeConfig)
    ranking: RankingConfig = field(default_factory=RankingConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    recipes: RecipesConfig = field(default_factory=RecipesConfig)

    def shelf_life_table(self) -> ShelfLifeTable:
        """Built-in table with configured per-ingredient overrides."""
        return ShelfLifeTable().with_overrides(
            self.shelf_life.days, default_days=self.shelf_life.default_days
        )

    def name_resolver(self) -> CanonicalNameResolver:
        return CanonicalNameResolver.from_table(
            self.shelf_life_table(), threshold=self.resolver.fuzzy_threshold
        )


def load_config(path: str | Path | None = None) -> FreshtrackConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    res = raw.get("resolver", {})
    shl = raw.get("shelf_life", {})
    rnk = raw.get("ranking", {})
    ocr = raw.get("ocr", {})
    rcp = raw.get("recipes", {})

    claude_cfg = ocr.get("claude", {})
    gemini_cfg = ocr.get("gemini", {})

    # Resolve API keys: config file → environment variable
    anthropic_env = os.environ.get("ANTHROPIC_API_KEY", "")
    claude_api_key = claude_cfg.get("api_key", "") or anthropic_env
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )

    shelf_days = {
        normalize(str(name)): int(days)
        for name, days in shl.get("days", {}).items()
    }

    return FreshtrackConfig(
        database=DatabaseConfig(
            path=dbs.get("path", "~/.config/freshtrack/pantry.db"),
        ),
        resolver=ResolverConfig(
            fuzzy_threshold=res.get("fuzzy_threshold", DEFAULT_FUZZY_THRESHOLD),
            min_import_confidence=res.get("min_import_confidence", 0.0),
        ),
        shelf_life=ShelfLifeConfig(
            default_days=shl.get("default_days", DEFAULT_DAYS),
            days=shelf_days,
        ),
        ranking=RankingConfig(
            top_n=rnk.get("top_n", 10),
        ),
        ocr=OCRConfig(
            backend=ocr.get("backend", "claude"),
            claude=ClaudeConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", _DEFAULT_CLAUDE_MODEL),
            ),
            gemini=GeminiConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", _DEFAULT_GEMINI_MODEL),
            ),
        ),
        recipes=RecipesConfig(
            backend=rcp.get("backend", "claude"),
            model=rcp.get("model", _DEFAULT_CLAUDE_MODEL),
            api_key=rcp.get("api_key", "") or anthropic_env,
        ),
    )
