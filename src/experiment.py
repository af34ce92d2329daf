import os
import sys
import json
import time
import datetime
import argparse
import math
import numpy as np
from scipy import stats
import scenarios
import config as base_config
from business_rules import format_violations, validate_business_rules
from engine import run_simulation
from evaluation import derive_seeds
from logging_export import EventLogger, export_run
from rules_engine import EXAMPLE_RULES
from state import PolicyConfigurationError, build_initial_state
from strategy import Strategy
def _kpi_stats(values: list[float]) -> dict:
    arr = np.asarray(values, dtype=float)
    arr = arr[~np.isnan(arr)]
    n = int(arr.size)
    if n == 0:
        return {"mean": 0.0, "stdev": 0.0, "min": 0.0, "max": 0.0, "n": 0, "ci95_half_width": 0.0}
    stdev = float(arr.std(ddof=1)) if n > 1 else 0.0
    half = float(stats.t.ppf(0.975, df=n-1) * stdev / math.sqrt(n)) if n > 1 else 0.0
    return {"mean": float(arr.mean()), "stdev": stdev, "min": float(arr.min()), "max": float(arr.max()),
            "n": n, "ci95_half_width": half}
class ExperimentRunner:
    """Replicates scenario files and compares their KPIs with t-based confidence intervals."""
    def __init__(self, scenario_manager):
        self.sm = scenario_manager
    def run_experiments(self, scenario_files: list[str], replications: int, output_root: str = "experiments") -> dict:
        experiment_dir = os.path.join(output_root, f"experiment_{datetime.datetime.now():%Y%m%d_%H%M%S}")
        os.makedirs(experiment_dir, exist_ok=True)
        print(f"--- {len(scenario_files)} scenario(s) x {replications} replication(s) -> {experiment_dir}")
        per_scenario = {}
        for path in scenario_files:
            scenario = self.sm.load(path)
            name = scenario.get("name", os.path.splitext(os.path.basename(path))[0])
            run_cfg = scenario.get("run", {})
            seeds = derive_seeds(run_cfg.get("seed_policy", "increment"),
                                 run_cfg.get("base_seed", base_config.RANDOM_SEED), replications)
            per_scenario[name] = [self._replicate(scenario, name, i, seed, experiment_dir)
                                  for i, seed in enumerate(seeds, start=1)]
        summary = {name: self._summarize(rows) for name, rows in per_scenario.items()}
        summary_path = os.path.join(experiment_dir, "experiment_summary.json")
        with open(summary_path, "w") as f:
            json.dump(summary, f, indent=4, cls=NumpyEncoder)
        self._print_summary_table(summary)
        print(f"Summary saved to: {summary_path}")
        return summary
    def _replicate(self, scenario: dict, name: str, rep: int, seed, experiment_dir: str):
        label = f"{name}_rep{rep:03d}"
        print(f"  {label} seed={seed}")
        try:
            run = self.sm.run_once(scenario, seed, os.path.join(experiment_dir, label), label)
        except PolicyConfigurationError:
            raise
        except Exception as e:
            print(f"  ERROR: {label} failed: {e}")
            return None
        return dict(run["metrics"], valid=1.0 if run["valid"] else 0.0)
    def _summarize(self, rows: list) -> dict:
        ok = [r for r in rows if r is not None]
        if not ok:
            return {"error": "No replication finished."}
        return {key: _kpi_stats([r.get(key, np.nan) for r in ok]) for key in ok[0]}
    def _print_summary_table(self, summary: dict):
        names = list(summary)
        if not names: return
        kpis = sorted({k for s in summary.values() for k, v in s.items() if isinstance(v, dict)})
        header = f"{'KPI':<28}" + "".join(f" | {n:<26}" for n in names)
        print("\n" + header + "\n" + "-" * len(header))
        for kpi in kpis:
            cells = []
            for n in names:
                s = summary[n].get(kpi)
                cells.append(f"{s['mean']:,.2f} +/- {s['ci95_half_width']:,.2f}" if isinstance(s, dict) else "N/A")
            print(f"{kpi:<28}" + "".join(f" | {c:<26}" for c in cells))
class NumpyEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, np.generic): return o.item()
        if isinstance(o, np.ndarray): return o.tolist()
        return super().default(o)
def _print_progress(iteration, total, phase, best_fitness):
    if iteration == total or iteration % 10 == 0:
        print(f"  [{phase}] {iteration}/{total} best fitness {best_fitness:,.2f}")
def _cmd_simulate(args, manager):
    output_dir = args.output or os.path.join(base_config.OUTPUT_DIR, f"run_{time.strftime('%Y%m%d_%H%M%S')}")
    if args.scenario:
        scenario = manager.load(args.scenario)
        run = manager.run_once(scenario, args.seed, output_dir, scenario.get("name", "scenario"), args.verbose)
        for key, value in run["metrics"].items():
            print(f"{key:<28} {value}")
        print(f"Outputs written to: {output_dir}")
        return
    strategy = Strategy(rules=list(EXAMPLE_RULES) if args.example_rules else [])
    logger = EventLogger(verbose=args.verbose)
    result = run_simulation(strategy, args.end_day, build_initial_state(args.initial_state),
                            seed=args.seed if args.seed is not None else base_config.RANDOM_SEED, logger=logger)
    validation = validate_business_rules(result.state)
    export_run(result, output_dir, logger, validation)
    for key, value in result.summary().items():
        print(f"{key:<28} {value}")
    print(format_violations(validation))
    print(f"Outputs written to: {output_dir}")
def _cmd_optimize(args, manager):
    scenario = manager.load(args.scenario) if args.scenario else {}
    if args.iterations:
        scenario.setdefault("optimizer", {}).setdefault("config", {})
        key = "generations" if args.method == "ga" else "total_iterations"
        scenario["optimizer"]["config"][key] = args.iterations
    output_dir = args.output or os.path.join(base_config.OUTPUT_DIR, f"opt_{args.method}_{time.strftime('%Y%m%d_%H%M%S')}")
    print(f"--- Optimizing with '{args.method}' ---")
    out = manager.run_optimization(scenario, output_dir, args.method, _print_progress, args.memory)
    print(f"Best fitness:   {out['best_fitness']:,.2f}")
    print(f"Best net worth: {out['best_net_worth']:,.2f}")
    if "validation" in out:
        v = out["validation"]
        print(f"Validation over {v['runs']} seeds: mean {v['mean_fitness']:,.2f} (std {v['std_fitness']:,.2f})")
    print(f"Outputs written to: {output_dir}")
def _cmd_experiment(args, manager):
    if not all(os.path.exists(f) for f in args.scenario_files):
        print("FATAL: One or more scenario files not found.")
        sys.exit(1)
    runner = ExperimentRunner(manager)
    runner.run_experiments(args.scenario_files, args.replications, args.output or "experiments")
def main(argv=None):
    parser = argparse.ArgumentParser(description="Two-product factory simulation and policy search.")
    sub = parser.add_subparsers(dest="command", required=True)
    p_sim = sub.add_parser("simulate", help="Run one simulation.")
    p_sim.add_argument('--scenario', type=str, help="Scenario YAML or JSON file.")
    p_sim.add_argument('--seed', type=int, default=None)
    p_sim.add_argument('--end-day', type=int, default=None)
    p_sim.add_argument('--initial-state', type=str, default=base_config.INITIAL_STATE_SCENARIO)
    p_sim.add_argument('--example-rules', action='store_true', help="Enable the built-in example rules.")
    p_sim.add_argument('-v', '--verbose', action='store_true')
    p_sim.add_argument('-o', '--output', type=str, default=None)
    p_opt = sub.add_parser("optimize", help="Search policy parameters.")
    p_opt.add_argument('--method', choices=["ga", "guided"], default="guided")
    p_opt.add_argument('--scenario', type=str, default=None)
    p_opt.add_argument('--iterations', type=int, default=None, help="Generations (ga) or iterations (guided).")
    p_opt.add_argument('--memory', type=str, default=None, help="Memory store JSON path.")
    p_opt.add_argument('-o', '--output', type=str, default=None)
    p_exp = sub.add_parser("experiment", help="Replicate scenarios and compare KPIs.")
    p_exp.add_argument('scenario_files', nargs='+', help="Paths to scenario config files.")
    p_exp.add_argument('-n', '--replications', type=int, default=10, help="Number of replications per scenario.")
    p_exp.add_argument('-o', '--output', type=str, default=None, help="Root directory for results.")
    args = parser.parse_args(argv)
    manager = scenarios.ScenarioManager(base_config)
    commands = {"simulate": _cmd_simulate, "optimize": _cmd_optimize, "experiment": _cmd_experiment}
    try:
        commands[args.command](args, manager)
    except PolicyConfigurationError as e:
        print(f"FATAL: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"A critical error occurred during '{args.command}': {e}")
        sys.exit(1)
if __name__ == "__main__":
    main()
