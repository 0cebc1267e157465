"""
Configuration Loader for the Legislative Results Map

This module provides a centralized way to load and access configuration
settings from the config.yaml file: data sources per environment, bloc colors
and labels, field alias overrides and output locations.

Usage:
    from ops.config_loader import Config

    config = Config()
    sources = config.get_sources("production")
    colors = config.get_bloc_colors()
    output = config.get_output_path()
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

from processing.blocs import ALIAS_TO_BLOC, DEFAULT_BLOC, NUANCE_TO_BLOC, BlocClassifier
from processing.fetch import DEFAULT_MAX_PAGES, DEFAULT_TIMEOUT, DataSources
from processing.field_registry import FieldRegistry

PACKAGED_CONFIG = Path(__file__).parent / "config.yaml"


class Config:
    """Configuration manager for the legislative results map."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "project_name": "Cartographie des circonscriptions législatives",
        "description": "Blocs politiques vainqueurs par circonscription",
        "blocs": {
            "default": DEFAULT_BLOC,
            "colors": {
                "Nouveau Front Populaire": "#d73027",
                "Ensemble": "#fee08b",
                "Rassemblement National": "#4575b4",
                "Les Républicains": "#1b7837",
                "Divers droite": "#a6d96a",
                "Divers gauche": "#fdae61",
                "Centre": "#74add1",
                "Divers": "#bdbdbd",
                "Autres": "#969696",
            },
            "labels": {},
        },
        "visualization": {
            "default_fill": "#bdbdbd",
            "center": [46.6, 2.5],
            "zoom_start": 6,
            "tiles": "OpenStreetMap",
            "fill_opacity": 0.65,
            "outline_color": "#444",
            "outline_weight": 1,
        },
        "output": {"html": "html/carte_legislatives.html"},
    }

    def __init__(
        self,
        config_file: Optional[str] = None,
        project_root_override: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable LEGISLATIVES_CONFIG_PATH
                        2. config.yaml in current directory
                        3. ops/config.yaml in current directory
                        4. the config.yaml shipped next to this module
            project_root_override: Override project root detection (useful for temp configs)
        """
        if config_file is None:
            env_config = os.environ.get("LEGISLATIVES_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            elif Path("ops/config.yaml").exists():
                config_file = "ops/config.yaml"
                logger.debug("Using ops/config.yaml from project root")
            elif PACKAGED_CONFIG.exists():
                config_file = str(PACKAGED_CONFIG)
            else:
                raise FileNotFoundError(
                    "No config.yaml found. Check current directory or set LEGISLATIVES_CONFIG_PATH"
                )

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        if project_root_override:
            self.project_root = Path(project_root_override).resolve()
            logger.debug(f"Using project root override: {self.project_root}")
        else:
            self.project_root = self._find_project_root()

        logger.debug(f"Loading config from: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            self.data = yaml.safe_load(f) or {}

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation, falling back to DEFAULTS.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default

        return value

    def environments(self) -> list:
        return list((self.data.get("environments") or {}).keys())

    def get_sources(self, environment: str = "production") -> DataSources:
        """Data sources of a caller-selected environment."""
        environments = self.data.get("environments") or {}
        if environment not in environments:
            raise ValueError(
                f"Unknown environment '{environment}'. Available: {list(environments.keys())}"
            )

        env = environments[environment] or {}
        geojson_urls = env.get("geojson_urls") or []
        if isinstance(geojson_urls, str):
            geojson_urls = [geojson_urls]
        results_url = env.get("results_url")
        if not geojson_urls or not results_url:
            raise ValueError(f"Environment '{environment}' needs geojson_urls and results_url")

        return DataSources(
            geojson_urls=[self._resolve_source(url) for url in geojson_urls],
            results_url=self._resolve_source(results_url),
            max_pages=int(env.get("max_pages", self.get("fetch.max_pages", DEFAULT_MAX_PAGES))),
            timeout=float(env.get("timeout", self.get("fetch.timeout", DEFAULT_TIMEOUT))),
            name=environment,
        )

    def _resolve_source(self, source: str) -> str:
        """URLs are kept; relative file paths are anchored at the project root."""
        if source.startswith(("http://", "https://")):
            return source
        path = Path(source)
        if not path.is_absolute():
            path = self.project_root / path
        return str(path)

    def get_bloc_colors(self) -> Dict[str, str]:
        colors = dict(self.DEFAULTS["blocs"]["colors"])
        colors.update((self.data.get("blocs") or {}).get("colors") or {})
        return colors

    def get_bloc_labels(self) -> Dict[str, str]:
        return dict(self.get("blocs.labels", {}) or {})

    def get_default_bloc(self) -> str:
        return str(self.get("blocs.default", DEFAULT_BLOC))

    def get_default_fill(self) -> str:
        """Fill for districts without results: the 'Divers' color unless configured."""
        configured = (self.data.get("visualization") or {}).get("default_fill")
        if configured:
            return configured
        return self.get_bloc_colors().get("Divers") or self.DEFAULTS["visualization"]["default_fill"]

    def get_visualization_setting(self, setting_key: str) -> Any:
        """Get visualization setting with defaults."""
        return self.get(f"visualization.{setting_key}")

    def get_field_registry(self) -> FieldRegistry:
        """Field registry with any alias overrides from the ``fields`` section."""
        overrides = self.data.get("fields") or {}
        return FieldRegistry(overrides=overrides)

    def get_bloc_classifier(self) -> BlocClassifier:
        """Bloc classifier with the built-in tables extended by configuration."""
        nuances = dict(NUANCE_TO_BLOC)
        nuances.update(self.get("blocs.nuances", {}) or {})
        aliases = dict(ALIAS_TO_BLOC)
        aliases.update(self.get("blocs.aliases", {}) or {})
        return BlocClassifier(nuance_table=nuances, alias_table=aliases)

    def get_output_path(self, output_key: str = "html") -> Path:
        """Absolute output path; its parent directory is created."""
        relative_path = self.get(f"output.{output_key}")
        if not relative_path:
            raise ValueError(f"Output key '{output_key}' not found in config: output")

        path = Path(relative_path)
        if not path.is_absolute():
            path = self.project_root / path
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def print_config_summary(self) -> None:
        """Log a summary of the current configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Project: {self.get('project_name', 'Unknown')}")
        logger.debug(f"Description: {self.get('description', 'No description')}")
        logger.debug(f"Config file: {self.config_path}")
        logger.debug(f"Environments: {self.environments()}")
        logger.debug(f"Blocs with colors: {len(self.get_bloc_colors())}")

    def _find_project_root(self) -> Path:
        """Find the project root directory by looking for characteristic files/directories."""
        current = self.config_path.parent
        project_markers = ["ops", "processing", "analysis", "pyproject.toml", ".git"]

        for _ in range(5):
            markers_found = sum(1 for marker in project_markers if (current / marker).exists())
            if markers_found >= 2:
                return current

            parent = current.parent
            if parent == current:
                break
            current = parent

        # Fallback: if config is in ops/, project root is parent
        if self.config_path.parent.name == "ops":
            return self.config_path.parent.parent

        return self.config_path.parent


def load_config(config_file: Optional[str] = None) -> Config:
    """Load configuration from file."""
    return Config(config_file)
