"""
Guided random search over the policy genes.

Like the genetic algorithm, the `encoding` setting picks flat (15),
tripled (45, one policy per cash bucket) or weekly (15 per week) genes.

Phase 1 samples uniformly at random (fewer samples when the memory store
supplies warm-start policies). Phase 2 draws each candidate from one of:

  * local search: Gaussian perturbation of one of the best few policies,
  * crossover: uniform mix of two of the top policies,
  * exploration: a fresh random policy.

Mutation intensity rises after a long run without improvement and drops
back as soon as the best fitness improves. When every top policy is still
losing money after a stagnation spell, candidates are forced random.
"""
#STANDARD IMPORTS

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

# 3rd PARTY IMPORTS

import numpy as np

#LOCAL IMPORTS

from config import GUIDED_SEARCH_CONFIG, PARAMETER_SPACE, POLICY_CONFIG, RANDOM_SEED
from evaluation import (Evaluation, EvaluationContext, derive_seeds, evaluate_batch, log_failures,
                        strategy_for_policy)
from logging_export import NullLogger
from policy_engine import PARAM_NAMES, clamp_policy, encoded_space, expand_policy, random_policy
from state import SimulationState, build_initial_state
from strategy import Strategy


@dataclass
class SearchResult:
    best_policy: Dict[str, float]
    best_strategy: object
    best_fitness: float
    best_net_worth: float
    convergence: List[float] = field(default_factory=list)
    iterations: int = 0
    used_memory: bool = False
    phase_counts: Dict[str, int] = field(default_factory=dict)
    failed_evaluations: int = 0
    recorded_to_memory: bool = False
    encoding: str = "flat"


class GuidedSearch:
    def __init__(self, initial_state: Optional[SimulationState] = None, base_strategy=None, cfg=None,
                 end_day: Optional[int] = None, demand_forecast=None, seed: Optional[int] = None,
                 memory=None, logger=None, progress: Optional[Callable] = None, config_ns=None, space=None):
        self.cfg = dict(GUIDED_SEARCH_CONFIG)
        self.cfg.update(cfg or {})
        self.seed = RANDOM_SEED if seed is None else seed
        self.rng = random.Random(self.seed)
        num_weeks = (config_ns.POLICY_CONFIG if config_ns is not None else POLICY_CONFIG)["weeks"]
        self.encoding = self.cfg["encoding"]
        self.space = encoded_space(self.encoding, space or PARAMETER_SPACE, num_weeks)
        self.context = EvaluationContext(initial_state or build_initial_state(), base_strategy, end_day,
                                         demand_forecast, config_ns, self.encoding, num_weeks)
        self.memory = memory
        self.logger = logger if logger is not None else NullLogger()
        self.progress = progress

        self.evaluations: List[Evaluation] = []
        self.best: Optional[Evaluation] = None
        self.intensity = self.cfg["base_intensity"]
        self.since_improvement = 0
        self.convergence: List[float] = []
        self.phase_counts = {"memory": 0, "random": 0, "local": 0, "crossover": 0, "explore": 0, "forced": 0}
        self._failed = 0

    # --- candidate generation ------------------------------------------

    def _top(self, k: int) -> List[Evaluation]:
        return sorted(self.evaluations, key=lambda e: e.fitness, reverse=True)[:k]

    def _local(self, parent: Dict[str, float]) -> Dict[str, float]:
        child = dict(parent)
        for name in self.space:
            if self.rng.random() < self.cfg["mutation_probability"]:
                lo, hi, _ = self.space[name]
                child[name] = child[name] + self.rng.gauss(0, 1) * self.intensity * (hi - lo)
        return clamp_policy(child, self.space)

    def _crossover(self, a: Dict[str, float], b: Dict[str, float]) -> Dict[str, float]:
        return clamp_policy({name: a[name] if self.rng.random() < 0.5 else b[name] for name in self.space},
                            self.space)

    def _stuck_negative(self) -> bool:
        top = self._top(self.cfg["feasibility_top_k"])
        return (bool(top) and all(e.net_worth < 0 for e in top)
                and self.since_improvement >= self.cfg["forced_random_stagnation"])

    def next_candidate(self):
        """One guided-phase candidate and the rule that produced it."""
        if self.since_improvement >= self.cfg["stagnation_window"]:
            self.intensity = self.cfg["stagnation_intensity"]
        if not self.evaluations:
            return random_policy(self.rng, self.space), "explore"
        if self._stuck_negative():
            return random_policy(self.rng, self.space), "forced"
        draw = self.rng.random()
        if draw < self.cfg["local_share"]:
            parent = self.rng.choice(self._top(self.cfg["local_top_k"]))
            return self._local(parent.policy), "local"
        if draw < self.cfg["local_share"] + self.cfg["crossover_share"]:
            pool = self._top(self.cfg["crossover_top_k"])
            a, b = self.rng.choice(pool), self.rng.choice(pool)
            return self._crossover(a.policy, b.policy), "crossover"
        return random_policy(self.rng, self.space), "explore"

    # --- bookkeeping ----------------------------------------------------

    def _seeds(self, n: int) -> List[Optional[int]]:
        if self.cfg["seed_policy"] == "fixed":
            return [self.seed] * n
        return derive_seeds(self.cfg["seed_policy"], self.rng.randrange(1, 10**9), n)

    def _run_batch(self, policies: List[Dict[str, float]], phases: List[str], total: int) -> None:
        results = evaluate_batch(policies, self.context, self._seeds(len(policies)),
                                 self.cfg["max_workers"], self.cfg["executor"])
        self._failed += log_failures(results, self.logger, len(self.evaluations))
        for evaluation, phase in zip(results, phases):
            self.evaluations.append(evaluation)
            self.phase_counts[phase] += 1
            if self.best is None or evaluation.fitness > self.best.fitness:
                self.best = evaluation
                self.since_improvement = 0
                self.intensity = self.cfg["base_intensity"]
                self.logger.log("new_best", None, iteration=len(self.evaluations), fitness=evaluation.fitness,
                                phase=phase)
            else:
                self.since_improvement += 1
            self.convergence.append(self.best.fitness)
            if self.progress is not None:
                stage = "random" if phase in ("memory", "random") else "guided"
                self.progress(len(self.evaluations), total, stage, self.best.fitness)

    def _demand_context(self) -> Dict[str, float]:
        base = self.context.base_strategy or Strategy()
        return base.demand_context()

    def warm_start_policies(self) -> List[Dict[str, float]]:
        if self.memory is None or not self.cfg["use_memory"]:
            return []
        found = self.memory.top_policies(self.cfg.get("warm_start_count", 10), self._demand_context())
        genomes = []
        for policy in found[:min(10, len(found))]:
            if set(policy) == set(self.space):
                genomes.append(clamp_policy(policy, self.space))
            elif set(policy) == set(PARAM_NAMES):
                genomes.append(clamp_policy(expand_policy(policy, self.encoding, self.context.num_weeks), self.space))
        return genomes

    def run(self) -> SearchResult:
        total = self.cfg["total_iterations"]
        batch = max(1, self.cfg["batch_size"])
        warm = self.warm_start_policies()
        random_n = self.cfg["random_iterations"]
        if warm:
            random_n = max(10, random_n // 3)
            self.logger.log("memory_warm_start", None, policies=len(warm), random_iterations=random_n)

        initial = [(p, "memory") for p in warm]
        initial += [(random_policy(self.rng, self.space), "random") for _ in range(random_n)]
        initial = initial[:total]
        for i in range(0, len(initial), batch):
            chunk = initial[i:i + batch]
            self._run_batch([p for p, _ in chunk], [ph for _, ph in chunk], total)

        while len(self.evaluations) < total:
            n = min(batch, total - len(self.evaluations))
            drawn = [self.next_candidate() for _ in range(n)]
            self._run_batch([p for p, _ in drawn], [ph for _, ph in drawn], total)

        best = self.best
        strategy = strategy_for_policy(best.policy, self.context)
        recorded = False
        if self.memory is not None and self.cfg["use_memory"] and best.error is None:
            recorded = self.memory.record(best.policy, best.fitness, best.net_worth, self._demand_context(),
                                          len(self.evaluations))
        return SearchResult(
            best_policy=best.policy,
            best_strategy=strategy,
            best_fitness=best.fitness,
            best_net_worth=best.net_worth,
            convergence=list(self.convergence),
            iterations=len(self.evaluations),
            used_memory=bool(warm),
            phase_counts=dict(self.phase_counts),
            failed_evaluations=self._failed,
            recorded_to_memory=recorded,
            encoding=self.encoding,
        )

    def validate(self, runs: Optional[int] = None, policy: Optional[Dict[str, float]] = None) -> Dict[str, float]:
        """Re-run the best policy under `runs` different seeds and summarize fitness and net worth."""
        runs = runs or self.cfg["validation_runs"]
        if policy is None:
            if self.best is None:
                raise RuntimeError("validate() needs a finished run() or an explicit policy")
            policy = self.best.policy
        seeds = derive_seeds("increment", self.seed, runs)
        results = evaluate_batch([policy] * runs, self.context, seeds, self.cfg["max_workers"], self.cfg["executor"])
        fitness = np.array([r.fitness for r in results], dtype=float)
        net_worth = np.array([r.net_worth for r in results], dtype=float)
        return {
            "runs": runs,
            "mean_fitness": float(fitness.mean()),
            "std_fitness": float(fitness.std()),
            "min_fitness": float(fitness.min()),
            "max_fitness": float(fitness.max()),
            "mean_net_worth": float(net_worth.mean()),
            "std_net_worth": float(net_worth.std()),
            "min_net_worth": float(net_worth.min()),
            "max_net_worth": float(net_worth.max()),
        }
