"""Cooldown windows and model rotation cursors per provider and tier.

One ProviderStateTracker belongs to one TextGenerator; there is no module
level instance, so tests get isolated state by building a new generator.

The tracker is mutated only from the event loop and never across an await,
so it needs no lock. Guard it with one if it is ever shared between threads.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from glutton.models import ModelTier

logger = logging.getLogger(__name__)

TIER_COOLDOWN_SECONDS = 120.0
PROVIDER_COOLDOWN_SECONDS = 300.0


@dataclass
class TierState:
    exhausted_until: float = 0.0
    last_model_index: int = 0
    failure_count: int = 0  # consecutive quota failures since last success


@dataclass
class ProviderState:
    name: str
    exhausted_until: float = 0.0
    tiers: dict[str, TierState] = field(default_factory=dict)

    def tier(self, tier: ModelTier) -> TierState:
        if tier not in self.tiers:
            self.tiers[tier] = TierState()
        return self.tiers[tier]


class ProviderStateTracker:
    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        tier_cooldown: float = TIER_COOLDOWN_SECONDS,
        provider_cooldown: float = PROVIDER_COOLDOWN_SECONDS,
    ) -> None:
        self._clock = clock
        self._tier_cooldown = tier_cooldown
        self._provider_cooldown = provider_cooldown
        self._providers: dict[str, ProviderState] = {}

    def provider(self, name: str) -> ProviderState:
        if name not in self._providers:
            self._providers[name] = ProviderState(name=name)
        return self._providers[name]

    def is_provider_cooling(self, name: str) -> bool:
        return self.provider(name).exhausted_until > self._clock()

    def is_tier_cooling(self, name: str, tier: ModelTier) -> bool:
        return self.provider(name).tier(tier).exhausted_until > self._clock()

    def select_model(self, name: str, tier: ModelTier, models: list[str]) -> str:
        state = self.provider(name).tier(tier)
        return models[state.last_model_index % len(models)]

    def record_success(self, name: str, tier: ModelTier) -> None:
        self.provider(name).tier(tier).failure_count = 0

    def record_quota_failure(
        self, name: str, tier: ModelTier, model_count: int, scope: str = "tier"
    ) -> bool:
        """Rotate to the next model. Returns True if this put something on cooldown.

        Once every candidate in the tier has failed in a row, either the tier
        (scope="tier") or the whole provider (scope="provider") is parked.
        """
        provider = self.provider(name)
        state = provider.tier(tier)
        state.last_model_index = (state.last_model_index + 1) % max(model_count, 1)
        state.failure_count += 1
        if state.failure_count < model_count:
            logger.info(
                "rotating provider=%s tier=%s to model index %d (%d/%d failed)",
                name, tier, state.last_model_index, state.failure_count, model_count,
            )
            return False

        state.failure_count = 0
        if scope == "provider":
            provider.exhausted_until = self._clock() + self._provider_cooldown
            logger.warning("provider=%s exhausted, cooling for %.0fs", name, self._provider_cooldown)
        else:
            state.exhausted_until = self._clock() + self._tier_cooldown
            logger.warning(
                "provider=%s tier=%s exhausted, cooling for %.0fs", name, tier, self._tier_cooldown
            )
        return True

    def snapshot(self) -> dict[str, Any]:
        now = self._clock()
        return {
            name: {
                "cooling_for": max(0.0, p.exhausted_until - now),
                "tiers": {
                    tier: {
                        "cooling_for": max(0.0, t.exhausted_until - now),
                        "last_model_index": t.last_model_index,
                        "failure_count": t.failure_count,
                    }
                    for tier, t in p.tiers.items()
                },
            }
            for name, p in self._providers.items()
        }
