"""
Ollama Model Optimizer
Detects local hardware and recommends coding models that fit in memory
"""

from .catalog import DEFAULT_CATALOG, ModelCatalog, ModelDescriptor, load_catalog
from .exceptions import (
    CatalogValidationError,
    ConfigError,
    InstallerUnavailable,
    LaunchFailed,
    ModelOptimizerError,
    ProbeUnavailable,
    PullFailed,
)
from .hardware import HardwareProbe, ResourceProfile, SystemInfo, get_probe
from .matcher import FitResult, MatchResult, Tier, match_catalog
from .modelfile import render_modelfile, write_modelfile
from .selector import ModelSelector

__version__ = "1.0.0"
__all__ = [
    "DEFAULT_CATALOG",
    "ModelCatalog",
    "ModelDescriptor",
    "load_catalog",
    "CatalogValidationError",
    "ConfigError",
    "InstallerUnavailable",
    "LaunchFailed",
    "ModelOptimizerError",
    "ProbeUnavailable",
    "PullFailed",
    "HardwareProbe",
    "ResourceProfile",
    "SystemInfo",
    "get_probe",
    "FitResult",
    "MatchResult",
    "Tier",
    "match_catalog",
    "render_modelfile",
    "write_modelfile",
    "ModelSelector",
]
