from dataclasses import dataclass, field
from typing import Any, Dict
import yaml


@dataclass
class Config:
    """Configuration object loaded from YAML."""
    data: Dict[str, Any]
    preprocessing: Dict[str, Any]
    model: Dict[str, Any]
    validation: Dict[str, Any]
    output: Dict[str, Any]
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        with open(path, "r") as f:
            cfg = yaml.safe_load(f)
        return cls(**cfg)
