"""
JSON-based project configuration for dxf_intake.

Allows overriding the filter thresholds and defaults through:
1. An explicit config file path via CLI
2. .dxfintake.json in the DXF file's directory
3. .dxfintake.json in the current directory
4. ~/.dxfintake.json

Example .dxfintake.json:
{
    "filters": {
        "coordinate_limit": 20000.0,
        "hidden_layer_patterns": ["defpoints", "^_", "annot"]
    },
    "clustering": {
        "radius": 75.0,
        "neighbor_ratio": 0.25
    },
    "sheet": {
        "width": 1000.0,
        "height": 500.0
    },
    "output": {
        "formats": ["json", "dxf"]
    }
}
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from dxf_intake.filtering.rules import (
    HIDDEN_LAYER_PATTERNS,
    SUSPICIOUS_LINETYPE_PATTERNS,
    FilterThresholds,
)
from dxf_intake.metrics import DEFAULT_SHEET_EFFICIENCY

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".dxfintake.json"


@dataclass
class FilterConfig:
    """Rule filter, phantom heuristics and consistency thresholds."""
    origin_tolerance: float = 0.001
    coordinate_limit: float = 10000.0
    min_length: float = 0.001
    oversized_line_factor: float = 5.0
    distance_outlier_factor: float = 3.0
    axis_aligned_factor: float = 2.0
    axis_tolerance: float = 0.001
    consistency_sigma: float = 3.0
    hidden_layer_patterns: List[str] = field(
        default_factory=lambda: list(HIDDEN_LAYER_PATTERNS))
    suspicious_linetype_patterns: List[str] = field(
        default_factory=lambda: list(SUSPICIOUS_LINETYPE_PATTERNS))


@dataclass
class ClusteringConfig:
    """Density clustering filter."""
    enabled: bool = True
    radius: float = 50.0
    neighbor_ratio: float = 0.3
    min_candidates: int = 3


@dataclass
class SheetConfig:
    """Default material sheet used for coverage reporting."""
    width: Optional[float] = None
    height: Optional[float] = None
    efficiency: float = DEFAULT_SHEET_EFFICIENCY


@dataclass
class InputConfig:
    """Limits applied when reading uploaded files."""
    max_file_size_mb: float = 50.0
    encoding: str = "utf-8"


@dataclass
class OutputConfig:
    """Output file configuration."""
    formats: List[str] = field(default_factory=lambda: ["json"])
    prefix: str = ""
    suffix: str = ""
    output_dir: str = ""


_SECTIONS = ('filters', 'clustering', 'sheet', 'input', 'output')


@dataclass
class ProjectConfig:
    """Complete project configuration."""
    filters: FilterConfig = field(default_factory=FilterConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    sheet: SheetConfig = field(default_factory=SheetConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def thresholds(self) -> FilterThresholds:
        """Immutable filter constants consumed by the pipeline."""
        f = self.filters
        c = self.clustering
        return FilterThresholds(
            origin_tolerance=f.origin_tolerance,
            coordinate_limit=f.coordinate_limit,
            min_length=f.min_length,
            oversized_line_factor=f.oversized_line_factor,
            distance_outlier_factor=f.distance_outlier_factor,
            axis_aligned_factor=f.axis_aligned_factor,
            axis_tolerance=f.axis_tolerance,
            consistency_sigma=f.consistency_sigma,
            cluster_enabled=c.enabled,
            cluster_radius=c.radius,
            cluster_neighbor_ratio=c.neighbor_ratio,
            cluster_min_candidates=c.min_candidates,
            hidden_layer_patterns=tuple(f.hidden_layer_patterns),
            suspicious_linetype_patterns=tuple(f.suspicious_linetype_patterns),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_json())
        logger.info("Configuration saved to %s", path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Create configuration from a dictionary; unknown keys are ignored."""
        config = cls()
        for section_name in _SECTIONS:
            section_data = data.get(section_name)
            if not isinstance(section_data, dict):
                continue
            section = getattr(config, section_name)
            for key, value in section_data.items():
                if hasattr(section, key):
                    setattr(section, key, value)
                else:
                    logger.debug("Unknown config key %s.%s ignored", section_name, key)
        return config

    @classmethod
    def from_json(cls, json_str: str) -> 'ProjectConfig':
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ProjectConfig':
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        logger.info("Configuration loaded from %s", path)
        return cls.from_dict(data)


def find_config_file(
    dxf_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Find a configuration file.

    Search order: explicit path, the DXF file's directory, the current
    working directory, the user's home directory.

    Returns:
        Path to config file if found, None otherwise
    """
    if explicit_config:
        explicit = Path(explicit_config)
        if explicit.exists():
            return explicit
        logger.warning("Explicit config not found: %s", explicit)

    candidates = []
    if dxf_path:
        candidates.append(Path(dxf_path).parent / CONFIG_FILENAME)
    candidates.append(Path.cwd() / CONFIG_FILENAME)
    candidates.append(Path.home() / CONFIG_FILENAME)

    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config(
    dxf_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> ProjectConfig:
    """Load configuration, falling back to defaults when none is found or it is unreadable."""
    config_path = find_config_file(dxf_path, explicit_config)

    if config_path:
        try:
            return ProjectConfig.load(config_path)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Failed to load config %s: %s", config_path, e)

    return ProjectConfig()


def merge_configs(base: ProjectConfig, override: ProjectConfig) -> ProjectConfig:
    """Merge two configurations; only non-default override values are applied."""
    merged = ProjectConfig.from_dict(base.to_dict())
    defaults = ProjectConfig()

    for section_name in _SECTIONS:
        override_section = getattr(override, section_name)
        default_section = getattr(defaults, section_name)
        merged_section = getattr(merged, section_name)
        for f in fields(override_section):
            value = getattr(override_section, f.name)
            if value != getattr(default_section, f.name):
                setattr(merged_section, f.name, value)

    return merged


def create_sample_config(path: Union[str, Path] = CONFIG_FILENAME) -> None:
    """Write a documented sample configuration file."""
    sample = {
        "_comment": "DXF intake analysis configuration",
        "_version": "1.0",
        **ProjectConfig().to_dict(),
    }
    sample["filters"]["_comment"] = "Rule filter and phantom heuristics (drawing units)"
    sample["clustering"]["_comment"] = "Entities need neighbor_ratio of all entities within radius"
    sample["sheet"]["_comment"] = "Material sheet for coverage reporting"

    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(sample, f, indent=2, ensure_ascii=False)

    logger.info("Sample configuration created: %s", path)
