"""
Configuration

Loads config/vitality.yaml if available, else uses defaults.
Environment variables (and .env) override storage and graph settings.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .models import Level


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "vitality.yaml"


def load_config_yaml(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file, return empty dict if not found."""
    path = Path(config_path or os.getenv("VITALITY_CONFIG") or DEFAULT_CONFIG_PATH)
    if path.exists():
        with open(path) as f:
            return yaml.safe_load(f) or {}
    return {}


@dataclass
class EngineConfig:
    """Tunable constants for plan generation, progression and analysis."""

    # Selection
    exercise_budget: Dict[Level, int] = field(default_factory=lambda: {
        Level.BEGINNER: 4,
        Level.INTERMEDIATE: 5,
        Level.ADVANCED: 6,
    })
    default_session_minutes: Dict[Level, int] = field(default_factory=lambda: {
        Level.BEGINNER: 45,
        Level.INTERMEDIATE: 60,
        Level.ADVANCED: 75,
    })
    default_variations: int = 3

    # Progression
    weight_increment: float = 2.5  # Loads round to this step
    compound_heavy_bump: float = 5.0  # Extra load when compound reps hit 10+
    trend_threshold: float = 5.0  # Week-over-week gain that counts as progress
    plateau_threshold: float = 2.0  # Gain over the whole window below this = plateau
    deload_incomplete_ratio: float = 0.3
    deload_window_weeks: int = 4

    # Analysis
    recent_window: int = 14  # Sessions considered "recent"
    substitution_threshold: float = 60.0  # Exercise completion % below which a swap is suggested

    @classmethod
    def from_yaml(cls, config_path: Optional[str] = None) -> 'EngineConfig':
        """Load config from YAML file."""
        yaml_config = load_config_yaml(config_path)

        kwargs = {}

        if 'engine' in yaml_config:
            en = yaml_config['engine'] or {}
            if 'exercise_budget' in en:
                kwargs['exercise_budget'] = {
                    Level(k): int(v) for k, v in en['exercise_budget'].items()
                }
            if 'default_session_minutes' in en:
                kwargs['default_session_minutes'] = {
                    Level(k): int(v) for k, v in en['default_session_minutes'].items()
                }
            kwargs['default_variations'] = en.get('default_variations', 3)

        if 'progression' in yaml_config:
            pr = yaml_config['progression'] or {}
            kwargs['weight_increment'] = pr.get('weight_increment', 2.5)
            kwargs['compound_heavy_bump'] = pr.get('compound_heavy_bump', 5.0)
            kwargs['trend_threshold'] = pr.get('trend_threshold', 5.0)
            kwargs['plateau_threshold'] = pr.get('plateau_threshold', 2.0)
            kwargs['deload_incomplete_ratio'] = pr.get('deload_incomplete_ratio', 0.3)
            kwargs['deload_window_weeks'] = pr.get('deload_window_weeks', 4)

        if 'analysis' in yaml_config:
            an = yaml_config['analysis'] or {}
            kwargs['recent_window'] = an.get('recent_window', 14)
            kwargs['substitution_threshold'] = an.get('substitution_threshold', 60.0)

        return cls(**kwargs)


@dataclass
class Settings:
    """Runtime settings for the service layer, CLI and MCP server."""
    engine: EngineConfig = field(default_factory=EngineConfig)
    store_backend: str = "memory"
    store_path: str = "~/.vitality/store.json"
    postgres_dsn: str = "postgresql://localhost:5432/vitality"
    neo4j_uri: Optional[str] = None
    neo4j_user: str = "neo4j"
    neo4j_password: Optional[str] = None
    neo4j_database: str = "neo4j"
    catalog_source: str = "yaml"  # yaml | neo4j
    catalog_path: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> 'Settings':
        load_dotenv()

        yaml_config = load_config_yaml(config_path)
        storage = yaml_config.get('storage') or {}
        graph = yaml_config.get('neo4j') or {}
        catalog = yaml_config.get('catalog') or {}

        return cls(
            engine=EngineConfig.from_yaml(config_path),
            store_backend=os.getenv("VITALITY_STORE", storage.get("backend", "memory")),
            store_path=os.getenv("VITALITY_DATA", storage.get("path", cls.store_path)),
            postgres_dsn=os.getenv("POSTGRES_DSN", storage.get("dsn", cls.postgres_dsn)),
            neo4j_uri=os.getenv("NEO4J_URI", graph.get("uri")),
            neo4j_user=os.getenv("NEO4J_USER", graph.get("user", "neo4j")),
            neo4j_password=os.getenv("NEO4J_PASSWORD"),
            neo4j_database=os.getenv("NEO4J_DATABASE", graph.get("database", "neo4j")),
            catalog_source=os.getenv("VITALITY_CATALOG_SOURCE", catalog.get("source", "yaml")),
            catalog_path=os.getenv("VITALITY_CATALOG", catalog.get("path")),
            log_level=os.getenv("VITALITY_LOG_LEVEL", yaml_config.get("log_level", "INFO")),
        )
