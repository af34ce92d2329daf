#STANDARD IMPORTS

import json
import os
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

#LOCAL IMPORTS

from config import MEMORY_CONFIG
from logging_export import _ensure_dir

DEMAND_KEYS = (
    "custom_demand_mean1",
    "custom_demand_std1",
    "custom_demand_mean2",
    "custom_demand_std2",
    "standard_demand_intercept",
    "standard_demand_slope",
)


@dataclass
class MemoryRecord:
    id: str
    policy: Dict[str, float]
    fitness: float
    net_worth: float
    demand_context: Dict[str, float]
    timestamp: str
    total_iterations: int
    sim_version: str


def demand_similarity(a: Dict[str, float], b: Dict[str, float]) -> float:
    """1 for identical demand contexts, falling with the mean relative difference, floored at 0."""
    total = 0.0
    for key in DEMAND_KEYS:
        x, y = a[key], b[key]
        avg = (abs(x) + abs(y)) / 2
        total += abs(x - y) / avg if avg > 0 else 0.0
    return max(0.0, 1 - total / len(DEMAND_KEYS))


class MemoryStore:
    """
    JSON file of good policies from earlier searches, keyed by demand context.

    Records written by another simulator version are pruned on load. A new
    record must reach quality_ratio of the average stored fitness once more
    than quality_min_records exist, and each demand context keeps at most
    max_records_per_context records (best first).
    """

    def __init__(self, path: Optional[str] = None, cfg=None, logger=None):
        self.cfg = cfg or MEMORY_CONFIG
        self.path = str(path or self.cfg["path"])
        self.version = self.cfg["sim_version"]
        self.logger = logger

    def _log(self, event_type: str, **fields) -> None:
        if self.logger is not None:
            self.logger.log(event_type, None, **fields)

    def load(self) -> List[MemoryRecord]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self._log("memory_unreadable", path=self.path, error=str(e))
            return []
        records = [MemoryRecord(**row) for row in data.get("records", [])]
        kept = [r for r in records if r.sim_version == self.version]
        if len(kept) != len(records):
            self._log("memory_pruned", removed=len(records) - len(kept), version=self.version)
        return kept

    def save(self, records: List[MemoryRecord]) -> None:
        _ensure_dir(os.path.dirname(self.path) or ".")
        payload = {
            "sim_version": self.version,
            "stats": self._stats(records),
            "records": [asdict(r) for r in records],
        }
        with open(self.path, "w") as f:
            json.dump(payload, f, indent=2)

    @staticmethod
    def _stats(records: List[MemoryRecord]) -> Dict[str, Any]:
        fitness = [r.fitness for r in records]
        return {
            "total_runs": len(records),
            "avg_fitness": sum(fitness) / len(fitness) if fitness else 0.0,
            "top_fitness": max(fitness) if fitness else 0.0,
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }

    def stats(self) -> Dict[str, Any]:
        return self._stats(self.load())

    def record(self, policy: Dict[str, float], fitness: float, net_worth: float,
               demand_context: Dict[str, float], total_iterations: int) -> bool:
        """Store a finished search result. Returns False when the quality gate rejects it."""
        records = self.load()
        if len(records) > self.cfg["quality_min_records"]:
            avg = sum(r.fitness for r in records) / len(records)
            threshold = avg * self.cfg["quality_ratio"]
            if fitness < threshold:
                self._log("memory_rejected", fitness=fitness, threshold=threshold)
                return False
        new = MemoryRecord(
            id=uuid.uuid4().hex,
            policy=dict(policy),
            fitness=fitness,
            net_worth=net_worth,
            demand_context={k: demand_context[k] for k in DEMAND_KEYS},
            timestamp=datetime.now(timezone.utc).isoformat(),
            total_iterations=total_iterations,
            sim_version=self.version,
        )
        records.append(new)
        records = self._cap_context(records, new.demand_context)
        self.save(records)
        self._log("memory_recorded", fitness=fitness, total=len(records))
        return True

    def _cap_context(self, records: List[MemoryRecord], context: Dict[str, float]) -> List[MemoryRecord]:
        limit = self.cfg["max_records_per_context"]
        threshold = self.cfg["similarity_threshold"]
        same = [r for r in records if demand_similarity(r.demand_context, context) >= threshold]
        if len(same) <= limit:
            return records
        keep = {r.id for r in sorted(same, key=lambda r: r.fitness, reverse=True)[:limit]}
        return [r for r in records if r.id in keep or r not in same]

    def find_similar(self, demand_context: Dict[str, float], threshold: Optional[float] = None) -> List[MemoryRecord]:
        threshold = self.cfg["similarity_threshold"] if threshold is None else threshold
        return [r for r in self.load() if demand_similarity(demand_context, r.demand_context) >= threshold]

    def top_policies(self, n: int = 10, demand_context: Optional[Dict[str, float]] = None) -> List[Dict[str, float]]:
        records = self.find_similar(demand_context) if demand_context is not None else self.load()
        records.sort(key=lambda r: r.fitness, reverse=True)
        return [dict(r.policy) for r in records[:n]]

    def clear(self) -> None:
        self.save([])
        self._log("memory_cleared", path=self.path)
