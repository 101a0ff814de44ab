"""Result types that separate the core outcome from best-effort side effects."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SideEffectResult:
    name: str
    ok: bool
    error: str | None = None

    @classmethod
    def success(cls, name: str) -> 'SideEffectResult':
        return cls(name=name, ok=True)

    @classmethod
    def failure(cls, name: str, error: str) -> 'SideEffectResult':
        return cls(name=name, ok=False, error=error)

    @classmethod
    def skipped(cls, name: str, reason: str) -> 'SideEffectResult':
        return cls(name=name, ok=False, error=f'skipped: {reason}')


@dataclass
class LifecycleResult:
    """An operation's persisted record plus the side effects it attempted."""

    appointment: Any
    side_effects: list[SideEffectResult] = field(default_factory=list)

    @property
    def side_effects_ok(self) -> bool:
        return all(effect.ok for effect in self.side_effects)
