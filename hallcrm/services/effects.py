"""Independent post-assignment side effects."""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

EffectCallable = Callable[[], Awaitable[object]]


@dataclass(slots=True, frozen=True)
class Effect:
    name: str
    run: EffectCallable


@dataclass(slots=True, frozen=True)
class EffectResult:
    name: str
    ok: bool
    error: str | None = None


async def run_effects(
    effects: Sequence[Effect],
    *,
    on_failure: Callable[[], Awaitable[None]] | None = None,
) -> list[EffectResult]:
    """Run each effect in order; a failure is recorded and the next effect still runs.

    ``on_failure`` is awaited after a failed effect, typically a session rollback
    so later effects start from clean state.
    """

    results: list[EffectResult] = []
    for effect in effects:
        try:
            await effect.run()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Effect %s failed", effect.name)
            results.append(EffectResult(effect.name, ok=False, error=str(exc) or type(exc).__name__))
            if on_failure is not None:
                await on_failure()
            continue
        results.append(EffectResult(effect.name, ok=True))
    return results
