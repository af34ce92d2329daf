import os, json, time, copy, types
from typing import Dict, Any, List, Optional
import numpy as np
import yaml
import config as base_config
from business_rules import validate_business_rules
from engine import run_simulation
from evaluation import build_policy_engine, derive_seeds
from genetic_algorithm import GeneticAlgorithm
from guided_search import GuidedSearch
from logging_export import EventLogger, _ensure_dir, _write_json, export_run, plot_convergence
from memory_store import MemoryStore
from objective import fitness_breakdown
from policy_engine import policy_from_dict
from rules_engine import EXAMPLE_RULES, rule_from_dict
from state import PolicyConfigurationError, build_initial_state
from strategy import strategy_from_dict
def _deepcopy_namespace(ns):
    class NS: pass
    out = NS()
    for k, v in ns.__dict__.items():
        if k.startswith("__") or isinstance(v, types.ModuleType):
            continue
        setattr(out, k, copy.deepcopy(v))
    return out
def _set_by_path(obj: Any, path: str, value: Any):
    parts = path.split('.')
    cur = obj
    for i, p in enumerate(parts[:-1]):
        if isinstance(cur, dict) and p in cur:
            cur = cur[p]
        elif hasattr(cur, p):
            cur = getattr(cur, p)
        else:
            bad_path = '.'.join(parts[:i+1])
            raise PolicyConfigurationError(f"Cannot resolve override path '{bad_path}'")
    last = parts[-1]
    if isinstance(cur, dict):
        if last not in cur:
            raise PolicyConfigurationError(f"Unknown config key '{path}'")
        cur[last] = value
    elif hasattr(cur, last):
        setattr(cur, last, value)
    else:
        raise PolicyConfigurationError(f"Unknown config key '{path}'")
def _apply_overrides(ns, overrides: Dict[str, Any]):
    if not overrides:
        return ns
    for key, override_value in overrides.items():
        if "." in key:
            _set_by_path(ns, key, override_value)
            continue
        if not hasattr(ns, key):
            raise PolicyConfigurationError(f"Unknown config key '{key}'")
        setattr(ns, key, copy.deepcopy(override_value))
    return ns
def _load_json_or_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        text = f.read()
    if path.lower().endswith((".yaml", ".yml")):
        return yaml.safe_load(text) or {}
    return json.loads(text)
class ScenarioManager:
    """
    Loads scenario files and turns them into runs.

    A scenario is a dict with optional keys: name, overrides (dot-path config
    overrides), strategy (Strategy fields), policy (policy parameters that
    generate the strategy), rules (rule dicts) or use_example_rules,
    demand_forecast (rows of day/standard_demand/custom_demand), optimizer
    (method plus config overrides) and run (seed_policy, base_seed, end_day,
    initial_state, output_root).
    """
    def __init__(self, base_cfg_module=base_config):
        self.base_cfg_module = base_cfg_module
    def load(self, path: str) -> Dict[str, Any]:
        data = _load_json_or_yaml(path)
        return data or {}
    def apply_to_config(self, scenario: Dict[str, Any]):
        cfg_ns = _deepcopy_namespace(self.base_cfg_module)
        _apply_overrides(cfg_ns, scenario.get("overrides", {}))
        run = scenario.get("run", {})
        if "end_day" in run:
            cfg_ns.SIMULATION_END_DAY = run["end_day"]
        if "initial_state" in run:
            cfg_ns.INITIAL_STATE_SCENARIO = run["initial_state"]
        if "RANDOM_SEED" in run:
            cfg_ns.RANDOM_SEED = run["RANDOM_SEED"]
        return cfg_ns

    def build_strategy(self, scenario: Dict[str, Any], cfg_ns, initial_state):
        strategy = strategy_from_dict(scenario.get("strategy", {}))
        if scenario.get("policy"):
            policy = policy_from_dict(scenario["policy"], cfg_ns.DEFAULT_POLICY, cfg_ns.POLICY_CONFIG["weeks"])
            engine = build_policy_engine(policy, cfg_ns)
            strategy = engine.to_strategy(initial_state, strategy, cfg_ns.SIMULATION_END_DAY)
        rules = [rule_from_dict(r) for r in scenario.get("rules", [])]
        if scenario.get("use_example_rules"):
            rules = list(EXAMPLE_RULES) + rules
        strategy.rules = rules
        return strategy

    def run_once(self, scenario: Dict[str, Any], seed: Optional[int], output_dir: str, label: str,
                 verbose: bool = False) -> Dict[str, Any]:
        cfg_ns = self.apply_to_config(scenario)
        if seed is None:
            seed = cfg_ns.RANDOM_SEED
        initial_state = build_initial_state(cfg_ns.INITIAL_STATE_SCENARIO)
        strategy = self.build_strategy(scenario, cfg_ns, initial_state)
        logger = EventLogger(verbose=verbose or cfg_ns.VERBOSE)
        result = run_simulation(strategy, cfg_ns.SIMULATION_END_DAY, initial_state,
                                scenario.get("demand_forecast"), seed, logger, cfg_ns)
        validation = validate_business_rules(result.state, cfg_ns.BUSINESS_RULES)
        _ensure_dir(output_dir)
        paths = export_run(result, output_dir, logger, validation)
        breakdown = fitness_breakdown(result.state, cfg_ns.FITNESS_CONFIG, cfg_ns.MATERIAL_CONFIG,
                                      cfg_ns.PRODUCTION_CONFIG)
        return {
            "label": label,
            "seed": seed,
            "output_dir": output_dir,
            "files": paths,
            "metrics": {
                "final_cash": result.final_cash,
                "final_debt": result.final_debt,
                "final_net_worth": result.final_net_worth,
                "fitness": result.fitness_score,
                "inventory_write_off": breakdown["inventory_write_off"],
                "stockout_days": result.state.stockout_days,
                "lost_production_days": result.state.lost_production_days,
                "rejected_material_orders": result.state.rejected_material_orders,
                "rejected_custom_orders": result.state.rejected_custom_orders,
                "custom_orders_completed": result.state.custom_orders_completed,
                "standard_units_completed": result.state.standard_units_completed,
                "critical_violations": validation.critical_count,
                "major_violations": validation.major_count,
                "warning_violations": validation.warning_count,
            },
            "valid": validation.valid,
        }
    def run_monte_carlo(self, scenario: Dict[str, Any], replications: int, out_root: str) -> Dict[str, Any]:
        run_cfg = scenario.get("run", {})
        name = scenario.get("name", "scenario")
        mc_root = os.path.join(out_root, f"mc_{name}_{time.strftime('%Y%m%d_%H%M%S')}")
        _ensure_dir(mc_root)
        seeds = derive_seeds(run_cfg.get("seed_policy", "increment"), run_cfg.get("base_seed"), replications)
        per_run = [self.run_once(scenario, seed, os.path.join(mc_root, f"rep_{rep:03d}"), f"{name}_rep{rep:03d}")
                   for rep, seed in enumerate(seeds, start=1)]
        agg = self._aggregate_mc(per_run)
        agg["valid_share"] = sum(r["valid"] for r in per_run) / len(per_run) if per_run else 0.0
        _write_json(os.path.join(mc_root, "aggregate.json"), agg)
        return {"root": mc_root, "replications": per_run, "aggregate": agg}
    def _aggregate_mc(self, per_run: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not per_run:
            return {}
        frame = np.array([[float(r["metrics"][k]) for k in per_run[0]["metrics"]] for r in per_run])
        p10, p50, p90 = np.percentile(frame, [10, 50, 90], axis=0)
        return {k: {"mean": float(frame[:, j].mean()), "p10": float(p10[j]), "p50": float(p50[j]),
                    "p90": float(p90[j]), "n": len(per_run)}
                for j, k in enumerate(per_run[0]["metrics"])}
    def run_optimization(self, scenario: Dict[str, Any], out_dir: str, method: Optional[str] = None,
                         progress=None, memory_path: Optional[str] = None) -> Dict[str, Any]:
        cfg_ns = self.apply_to_config(scenario)
        opt = scenario.get("optimizer", {})
        method = method or opt.get("method", "guided")
        seed = scenario.get("run", {}).get("base_seed", cfg_ns.RANDOM_SEED)
        initial_state = build_initial_state(cfg_ns.INITIAL_STATE_SCENARIO)
        base_strategy = strategy_from_dict(scenario.get("strategy", {}))
        logger = EventLogger(verbose=cfg_ns.VERBOSE)
        common = dict(initial_state=initial_state, base_strategy=base_strategy, cfg=opt.get("config", {}),
                      end_day=cfg_ns.SIMULATION_END_DAY, demand_forecast=scenario.get("demand_forecast"),
                      seed=seed, logger=logger, progress=progress, config_ns=cfg_ns,
                      space=cfg_ns.PARAMETER_SPACE)
        _ensure_dir(out_dir)
        out: Dict[str, Any] = {"method": method, "seed": seed}
        if method == "ga":
            ga = GeneticAlgorithm(**common)
            result = ga.run([cfg_ns.DEFAULT_POLICY])
            out.update({"generations_run": result.generations_run, "converged": result.converged,
                        "evaluations": result.evaluations})
        elif method == "guided":
            memory = MemoryStore(memory_path or cfg_ns.MEMORY_CONFIG["path"], cfg_ns.MEMORY_CONFIG, logger)
            search = GuidedSearch(memory=memory, **common)
            result = search.run()
            out.update({"iterations": result.iterations, "used_memory": result.used_memory,
                        "phase_counts": result.phase_counts,
                        "validation": search.validate(opt.get("validation_runs"))})
        else:
            raise PolicyConfigurationError(f"Unknown optimizer method '{method}'")
        out.update({"best_fitness": result.best_fitness, "best_net_worth": result.best_net_worth,
                    "best_policy": result.best_policy, "encoding": result.encoding,
                    "failed_evaluations": result.failed_evaluations})
        _write_json(os.path.join(out_dir, "best_policy.json"), out)
        _write_json(os.path.join(out_dir, "best_strategy.json"), result.best_strategy.to_dict())
        plot_convergence(result.convergence, os.path.join(out_dir, "convergence.png"), f"{method} best fitness")
        return out
