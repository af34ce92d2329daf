#STANDARD IMPORTS

import random
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

#LOCAL IMPORTS

import config as base_config
from engine import run_simulation
from policy_engine import PolicyEngine, PolicyInput, decode_policy
from state import PolicyConfigurationError, SimulationState
from strategy import Strategy


@dataclass
class EvaluationContext:
    """
    Everything a candidate evaluation needs besides the policy and its seed. Read only.

    `encoding` names how candidate genes map onto a policy ('flat', 'tripled'
    or 'weekly'); `num_weeks` sizes the weekly encoding.
    """
    initial_state: SimulationState
    base_strategy: Any = None
    end_day: Optional[int] = None
    demand_forecast: Optional[List[Dict]] = None
    config_ns: Any = None
    encoding: str = "flat"
    num_weeks: Optional[int] = None

    @property
    def cfg(self):
        return self.config_ns or base_config


@dataclass
class Evaluation:
    policy: Dict[str, float]
    fitness: float
    net_worth: float
    seed: Optional[int]
    error: Optional[str] = None


def derive_seeds(policy: str, base_seed: Optional[int], n: int) -> List[Optional[int]]:
    if policy == "fixed":
        return [base_seed] * n
    if policy == "increment":
        start = 0 if base_seed is None else base_seed
        return [start + i for i in range(n)]
    if policy == "random":
        rng = random.Random(base_seed)
        return [rng.randrange(1, 10**9) for _ in range(n)]
    return [base_seed] * n


def build_policy_engine(policy: PolicyInput, config_ns=None) -> PolicyEngine:
    """A PolicyEngine wired to every config section of `config_ns` (the config module when None)."""
    cfg = config_ns or base_config
    return PolicyEngine(policy, cfg.STATE_THRESHOLDS, cfg.STATE_MULTIPLIERS, cfg.POLICY_CONFIG,
                        cfg.PRICING_CONFIG, cfg.WORKFORCE_CONFIG, cfg.MATERIAL_CONFIG)


def strategy_for_policy(genes: Dict[str, float], context: EvaluationContext) -> Strategy:
    """The Strategy a candidate is scored with. Optimizers return exactly this for their best candidate."""
    policy = decode_policy(genes, context.encoding, context.num_weeks)
    end_day = context.cfg.SIMULATION_END_DAY if context.end_day is None else context.end_day
    return build_policy_engine(policy, context.config_ns).to_strategy(context.initial_state,
                                                                     context.base_strategy, end_day)


def evaluate_policy(policy: Dict[str, float], context: EvaluationContext, seed: Optional[int]) -> Evaluation:
    strategy = strategy_for_policy(policy, context)
    result = run_simulation(strategy, context.end_day, context.initial_state, context.demand_forecast,
                            seed, config_ns=context.config_ns)
    return Evaluation(dict(policy), result.fitness_score, result.final_net_worth, seed)


def _safe_evaluate(task) -> Evaluation:
    policy, context, seed = task
    try:
        return evaluate_policy(policy, context, seed)
    except Exception as e:
        # one bad candidate never aborts a generation
        sentinel = context.cfg.FITNESS_CONFIG["bankruptcy_score"]
        return Evaluation(dict(policy), sentinel, sentinel, seed, error=f"{type(e).__name__}: {e}")


def evaluate_batch(policies: List[Dict[str, float]], context: EvaluationContext, seeds: List[Optional[int]],
                   max_workers: int = 1, executor: str = "thread") -> List[Evaluation]:
    """Evaluate candidates in a pool and return results in input order once all have finished."""
    if len(policies) != len(seeds):
        raise ValueError("policies and seeds must have the same length")
    if executor == "process" and context.config_ns is not None:
        raise PolicyConfigurationError("A process pool cannot carry a scenario config namespace; use threads")
    tasks = [(p, context, s) for p, s in zip(policies, seeds)]
    if max_workers <= 1 or len(tasks) <= 1:
        return [_safe_evaluate(t) for t in tasks]
    pool_cls = ProcessPoolExecutor if executor == "process" else ThreadPoolExecutor
    with pool_cls(max_workers=max_workers) as pool:
        return list(pool.map(_safe_evaluate, tasks))


def log_failures(evaluations: List[Evaluation], logger, iteration: int) -> int:
    failed = [e for e in evaluations if e.error is not None]
    if logger is not None:
        for e in failed:
            logger.log("candidate_failed", None, iteration=iteration, seed=e.seed, error=e.error)
    return len(failed)
