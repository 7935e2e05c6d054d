"""
Sweep Reports

Batch operations (aggregate every library of a run, regenerate every run)
continue past individual failures. Instead of relying on log output, they
return a ``SweepReport`` that lists one outcome per (step, key).
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class SweepOutcome:
    step: str
    key: str
    outcome: str  # "ok" | "skipped" | "failed"
    error: Optional[str] = None


@dataclass
class SweepReport:
    """Ordered per-item results of a batch operation."""

    label: str = ""
    outcomes: List[SweepOutcome] = field(default_factory=list)

    def ok(self, step: str, key: str) -> None:
        self.outcomes.append(SweepOutcome(step, key, "ok"))

    def skipped(self, step: str, key: str, reason: Optional[str] = None) -> None:
        self.outcomes.append(SweepOutcome(step, key, "skipped", reason))

    def failed(self, step: str, key: str, error: BaseException) -> None:
        self.outcomes.append(
            SweepOutcome(step, key, "failed", f"{type(error).__name__}: {error}")
        )

    def extend(self, other: "SweepReport") -> None:
        self.outcomes.extend(other.outcomes)

    @property
    def succeeded(self) -> List[SweepOutcome]:
        return [o for o in self.outcomes if o.outcome == "ok"]

    @property
    def failures(self) -> List[SweepOutcome]:
        return [o for o in self.outcomes if o.outcome == "failed"]

    @property
    def skips(self) -> List[SweepOutcome]:
        return [o for o in self.outcomes if o.outcome == "skipped"]

    @property
    def all_ok(self) -> bool:
        return not self.failures

    def for_step(self, step: str) -> List[SweepOutcome]:
        return [o for o in self.outcomes if o.step == step]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "succeeded": len(self.succeeded),
            "failed": len(self.failures),
            "skipped": len(self.skips),
            "outcomes": [asdict(o) for o in self.outcomes],
        }
