from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class LoyaltySnapshot:
    earn: Dict[str, int]
    redeem: Dict[str, int]
    rejections: Dict[str, int]
    rules: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "earn": dict(self.earn),
            "redeem": dict(self.redeem),
            "rejections": dict(self.rejections),
            "rules": dict(self.rules),
        }


class LoyaltyObservabilityStore:
    """Collect points ledger telemetry for dashboards and alerting."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._earn: Dict[str, int] = defaultdict(int)
        self._redeem: Dict[str, int] = defaultdict(int)
        self._rejections: Dict[str, int] = defaultdict(int)
        self._rules: Dict[str, int] = defaultdict(int)

    def record_earn(self, *, category: str, service_type: str, points: int) -> None:
        with self._lock:
            self._earn["transactions"] += 1
            self._earn["points"] += points
            self._rules[f"{category}:{service_type}"] += 1

    def record_redemption(self, *, reward_type: str, points: int) -> None:
        with self._lock:
            self._redeem["transactions"] += 1
            self._redeem["points"] += points
            self._redeem[f"type:{reward_type}"] += 1

    def record_rejection(self, code: str) -> None:
        with self._lock:
            self._rejections[code] += 1

    def snapshot(self) -> LoyaltySnapshot:
        with self._lock:
            return LoyaltySnapshot(
                earn=dict(self._earn),
                redeem=dict(self._redeem),
                rejections=dict(self._rejections),
                rules=dict(self._rules),
            )

    def reset(self) -> None:
        with self._lock:
            self._earn.clear()
            self._redeem.clear()
            self._rejections.clear()
            self._rules.clear()


_STORE = LoyaltyObservabilityStore()


def get_loyalty_store() -> LoyaltyObservabilityStore:
    return _STORE


__all__ = ["get_loyalty_store", "LoyaltyObservabilityStore", "LoyaltySnapshot"]
