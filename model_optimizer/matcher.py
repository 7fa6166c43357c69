"""
Fit the model catalog to the available hardware resources
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Tuple

from .catalog import ModelDescriptor
from .hardware import ResourceProfile

logger = logging.getLogger(__name__)

# Extra RAM needed on top of rec_gb before the full context window is advised
CONTEXT_HEADROOM_GB = 4

NOTE_FULL_CONTEXT = "full context usable"
NOTE_REDUCE_ON_OOM = "reduce context if out-of-memory"
NOTE_SLOWER = "slower performance expected"

# Offered when nothing in the catalog fits
LIGHTWEIGHT_SUGGESTIONS: Tuple[Tuple[str, int], ...] = (
    ("stable-code:3b", 3),
    ("codegemma:2b", 2),
)


class Tier(Enum):
    OPTIMAL = "optimal"
    REDUCED = "reduced"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class FitResult:
    """A catalog entry annotated with its tier and suggested context window"""
    descriptor: ModelDescriptor
    adjusted_context: int
    note: str
    tier: Tier

    @property
    def name(self) -> str:
        return self.descriptor.name


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching a catalog against a resource profile"""
    max_model_size_gb: int
    optimal: Tuple[FitResult, ...] = field(default_factory=tuple)
    reduced: Tuple[FitResult, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        """True when the host struggles with every model in the catalog"""
        return not self.optimal and not self.reduced

    @property
    def candidates(self) -> List[FitResult]:
        return list(self.optimal) + list(self.reduced)

    @property
    def lightweight_suggestions(self) -> Tuple[Tuple[str, int], ...]:
        return LIGHTWEIGHT_SUGGESTIONS if self.is_empty else ()


def classify(descriptor: ModelDescriptor, profile: ResourceProfile) -> FitResult:
    """Decide the tier and context window for a single catalog entry"""
    max_size = profile.max_model_size_gb

    if max_size >= descriptor.rec_gb:
        if profile.available_ram_gb >= descriptor.rec_gb + CONTEXT_HEADROOM_GB:
            return FitResult(descriptor, descriptor.context, NOTE_FULL_CONTEXT, Tier.OPTIMAL)
        return FitResult(descriptor, descriptor.context // 2, NOTE_REDUCE_ON_OOM, Tier.OPTIMAL)

    if max_size >= descriptor.min_gb:
        # True division first, floor the product
        reduction_factor = max_size / descriptor.rec_gb
        adjusted = math.floor(descriptor.context * reduction_factor)
        return FitResult(descriptor, adjusted, NOTE_SLOWER, Tier.REDUCED)

    return FitResult(descriptor, 0, "", Tier.UNSUPPORTED)


def match_catalog(catalog: Iterable[ModelDescriptor], profile: ResourceProfile) -> MatchResult:
    """Partition the catalog into optimal and reduced tiers, keeping catalog order"""
    optimal = []
    reduced = []

    for descriptor in catalog:
        fit = classify(descriptor, profile)
        if fit.tier is Tier.OPTIMAL:
            optimal.append(fit)
        elif fit.tier is Tier.REDUCED:
            reduced.append(fit)
        else:
            logger.debug(f"{descriptor.name} needs {descriptor.min_gb}GB, skipping")

    result = MatchResult(
        max_model_size_gb=profile.max_model_size_gb,
        optimal=tuple(optimal),
        reduced=tuple(reduced),
    )
    if result.is_empty:
        logger.info(f"No catalog model fits in {profile.max_model_size_gb}GB")
    return result
