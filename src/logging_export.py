import os
import csv
import json
import time
from typing import Dict, List, Any, Iterable, Optional
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
from config import CHART_CONFIG

# event_type -> console prefix used when the logger runs verbose
_PREFIXES = {
    "loan_taken": "FINANCE:",
    "auto_loan": "FINANCE:",
    "debt_paid": "FINANCE:",
    "debt_payment_failed": "FINANCE:",
    "cash_clamped": "WARNING:",
    "material_ordered": "INVENTORY:",
    "material_order_rejected": "INVENTORY:",
    "material_arrived": "INVENTORY:",
    "stockout": "STOCKOUT:",
    "hired": "WORKFORCE:",
    "promoted": "WORKFORCE:",
    "quit": "WORKFORCE:",
    "custom_orders_rejected": "PRODUCTION:",
    "machine_bought": "PRODUCTION:",
    "machine_sold": "PRODUCTION:",
    "machine_purchase_rejected": "PRODUCTION:",
    "machine_sale_rejected": "PRODUCTION:",
    "rule_triggered": "RULES:",
    "candidate_failed": "WARNING:",
}


class EventLogger:
    def __init__(self, verbose: bool = False) -> None:
        self.events: List[Dict[str, Any]] = []
        self._eid: int = 0
        self.verbose = verbose
    def clear(self) -> None:
        self.events.clear()
        self._eid = 0
    def __len__(self) -> int:
        return len(self.events)
    def log(self, event_type: str, day: Optional[int], **fields: Any) -> None:
        self._eid += 1
        row = {
            'event_id': self._eid,
            'event_type': event_type,
            'day': day,
            'timestamp': time.time(),
        }
        row.update(fields)
        self.events.append(row)
        if self.verbose:
            prefix = _PREFIXES.get(event_type, "INFO:")
            detail = ", ".join(f"{k}={v}" for k, v in fields.items())
            print(f"{prefix} day {day} {event_type} {detail}")
    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e['event_type'] == event_type]
    def count(self, event_type: str) -> int:
        return sum(1 for e in self.events if e['event_type'] == event_type)


class NullLogger(EventLogger):
    """Drops everything. Used inside optimizer loops where events are never read."""
    def log(self, event_type: str, day: Optional[int], **fields: Any) -> None:
        return None


class AlertBoard:
    def __init__(self) -> None:
        self.alerts: List[Dict[str, Any]] = []
        self._alert_index: Dict[str, int] = {}
    def raise_alert(self, key, severity, title, message, day, meta=None):
        if key in self._alert_index:
            idx = self._alert_index[key]
            self.alerts[idx]["latest_seen"] = day
            self.alerts[idx]["count"] += 1
            return
        rec = {
            "key": key, "severity": severity, "title": title, "message": message,
            "first_seen": day, "latest_seen": day, "count": 1, "meta": meta or {}
        }
        self._alert_index[key] = len(self.alerts)
        self.alerts.append(rec)
    def by_severity(self, severity: str) -> List[Dict[str, Any]]:
        return [a for a in self.alerts if a["severity"] == severity]


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _write_csv(path: str, rows: Iterable[Dict[str, Any]], fieldnames: Optional[List[str]] = None) -> None:
    _ensure_dir(os.path.dirname(path) or ".")
    rows = list(rows)
    if not rows and not fieldnames:
        open(path, 'w').close()
        return
    if fieldnames is None:
        all_keys = set()
        for r in rows:
            all_keys.update(r.keys())
        preferred_order = [
            'event_id', 'event_type', 'day', 'timestamp', 'cash', 'debt', 'net_worth',
            'amount', 'quantity', 'count', 'reason'
        ]
        final_fieldnames = [k for k in preferred_order if k in all_keys]
        remaining_keys = sorted([k for k in all_keys if k not in preferred_order])
        final_fieldnames.extend(remaining_keys)
    else:
        final_fieldnames = fieldnames
    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=final_fieldnames, extrasaction='ignore')
        writer.writeheader()
        if rows:
            writer.writerows(rows)


def _write_json(path: str, obj: Any) -> None:
    _ensure_dir(os.path.dirname(path) or ".")
    with open(path, 'w') as f:
        json.dump(obj, f, indent=2, default=str)


def history_to_frame(history) -> pd.DataFrame:
    frame = pd.DataFrame(history.records)
    if not frame.empty:
        frame = frame.set_index("day")
    return frame


def export_run(result, out_dir: str, logger: Optional[EventLogger] = None, validation=None) -> Dict[str, str]:
    """Dump one finished run: per-day history, events, summary and rule violations."""
    _ensure_dir(out_dir)
    paths = {}
    frame = history_to_frame(result.state.history)
    paths["history"] = os.path.join(out_dir, "history.csv")
    frame.to_csv(paths["history"])
    if logger is not None:
        paths["events"] = os.path.join(out_dir, "events.csv")
        _write_csv(paths["events"], logger.events)
    paths["summary"] = os.path.join(out_dir, "summary.json")
    _write_json(paths["summary"], result.summary())
    if validation is not None:
        paths["violations"] = os.path.join(out_dir, "violations.json")
        _write_json(paths["violations"], validation.to_dict())
    return paths


def plot_convergence(convergence: List[float], path: str, title: str = "Best fitness") -> str:
    _ensure_dir(os.path.dirname(path) or ".")
    fig, ax = plt.subplots(figsize=CHART_CONFIG["figsize"])
    ax.plot(range(1, len(convergence) + 1), convergence, marker="o", markersize=3)
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Fitness")
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(path, dpi=CHART_CONFIG["dpi"])
    plt.close(fig)
    return path
