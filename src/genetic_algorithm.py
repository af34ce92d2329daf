"""
Genetic algorithm over the policy genes.

The `encoding` setting picks the genome: the 15 flat parameters, 45 genes
(one policy per cash bucket) or 15 genes per week. Operators work on the
flattened genes; candidates are decoded into a policy only for evaluation.

Each generation keeps the elite unchanged (with their already known
fitness), fills the rest by tournament selection, uniform crossover and
per-gene Gaussian mutation, then evaluates the new children in a pool. The
run stops after the configured number of generations or once the best
fitness has gained less than the convergence threshold over the last
convergence_window generations.
"""
#STANDARD IMPORTS

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

#LOCAL IMPORTS

from config import DEFAULT_POLICY, GA_CONFIG, PARAMETER_SPACE, POLICY_CONFIG, RANDOM_SEED
from evaluation import (Evaluation, EvaluationContext, derive_seeds, evaluate_batch, log_failures,
                        strategy_for_policy)
from logging_export import NullLogger
from policy_engine import clamp_policy, encoded_space, expand_policy, random_policy
from state import SimulationState, build_initial_state


@dataclass
class GAResult:
    best_policy: Dict[str, float]
    best_strategy: object
    best_fitness: float
    best_net_worth: float
    convergence: List[float] = field(default_factory=list)
    average_fitness: List[float] = field(default_factory=list)
    elite_fitness: List[List[float]] = field(default_factory=list)
    generations_run: int = 0
    encoding: str = "flat"
    converged: bool = False
    evaluations: int = 0
    failed_evaluations: int = 0


class GeneticAlgorithm:
    def __init__(self, initial_state: Optional[SimulationState] = None, base_strategy=None, cfg=None,
                 end_day: Optional[int] = None, demand_forecast=None, seed: Optional[int] = None,
                 logger=None, progress: Optional[Callable] = None, config_ns=None, space=None):
        self.cfg = dict(GA_CONFIG)
        self.cfg.update(cfg or {})
        self.seed = RANDOM_SEED if seed is None else seed
        self.rng = random.Random(self.seed)
        num_weeks = (config_ns.POLICY_CONFIG if config_ns is not None else POLICY_CONFIG)["weeks"]
        self.encoding = self.cfg["encoding"]
        self.space = encoded_space(self.encoding, space or PARAMETER_SPACE, num_weeks)
        self.context = EvaluationContext(initial_state or build_initial_state(), base_strategy, end_day,
                                         demand_forecast, config_ns, self.encoding, num_weeks)
        self.logger = logger if logger is not None else NullLogger()
        self.progress = progress
        self._evaluations = 0
        self._failed = 0

    # --- operators ------------------------------------------------------

    def _tournament(self, population: List[Evaluation]) -> Evaluation:
        k = min(self.cfg["tournament_size"], len(population))
        contenders = self.rng.sample(population, k)
        return max(contenders, key=lambda e: e.fitness)

    def _crossover(self, a: Dict[str, float], b: Dict[str, float]) -> Dict[str, float]:
        if self.rng.random() >= self.cfg["crossover_rate"]:
            return dict(a)
        return {name: a[name] if self.rng.random() < 0.5 else b[name] for name in self.space}

    def _mutate(self, policy: Dict[str, float]) -> Dict[str, float]:
        out = dict(policy)
        for name in self.space:
            if self.rng.random() < self.cfg["mutation_rate"]:
                lo, hi, _ = self.space[name]
                out[name] = out[name] + self.rng.gauss(0, self.cfg["mutation_scale"] * (hi - lo))
        return clamp_policy(out, self.space)

    # --- evaluation -----------------------------------------------------

    def _evaluate(self, policies: List[Dict[str, float]], generation: int) -> List[Evaluation]:
        seeds = derive_seeds(self.cfg["seed_policy"], self.rng.randrange(1, 10**9)
                             if self.cfg["seed_policy"] != "fixed" else self.seed, len(policies))
        results = evaluate_batch(policies, self.context, seeds, self.cfg["max_workers"], self.cfg["executor"])
        self._evaluations += len(results)
        self._failed += log_failures(results, self.logger, generation)
        return results

    def initial_population(self, seed_policies: Optional[List[Dict[str, float]]] = None) -> List[Dict[str, float]]:
        """Seed policies first (15-parameter policies are repeated across the genome), then random genomes."""
        size = self.cfg["population_size"]
        population = [clamp_policy(self._genes(p), self.space) for p in (seed_policies or [DEFAULT_POLICY])][:size]
        while len(population) < size:
            population.append(random_policy(self.rng, self.space))
        return population

    def _genes(self, policy: Dict[str, float]) -> Dict[str, float]:
        if set(policy) == set(self.space):
            return policy
        return expand_policy(policy, self.encoding, self.context.num_weeks)

    def _converged(self, history: List[float]) -> bool:
        window = self.cfg["convergence_window"]
        if len(history) <= window:
            return False
        return history[-1] - history[-1 - window] < self.cfg["convergence_threshold"]

    def run(self, seed_policies: Optional[List[Dict[str, float]]] = None) -> GAResult:
        generations = self.cfg["generations"]
        population = self._evaluate(self.initial_population(seed_policies), 0)
        best_history: List[float] = []
        avg_history: List[float] = []
        elite_history: List[List[float]] = []
        converged = False
        generation = 0

        for generation in range(1, generations + 1):
            population.sort(key=lambda e: e.fitness, reverse=True)
            best_history.append(population[0].fitness)
            avg_history.append(sum(e.fitness for e in population) / len(population))
            elite_history.append([e.fitness for e in population[:self.cfg["elite_count"]]])
            self.logger.log("generation", generation, best=population[0].fitness, average=avg_history[-1])
            if self.progress is not None:
                self.progress(generation, generations, "evolve", population[0].fitness)
            if generation == generations:
                break
            if self._converged(best_history):
                converged = True
                break

            elite = population[:self.cfg["elite_count"]]
            children = []
            while len(elite) + len(children) < self.cfg["population_size"]:
                a = self._tournament(population)
                b = self._tournament(population)
                children.append(self._mutate(self._crossover(a.policy, b.policy)))
            population = elite + self._evaluate(children, generation)

        population.sort(key=lambda e: e.fitness, reverse=True)
        best = population[0]
        strategy = strategy_for_policy(best.policy, self.context)
        return GAResult(
            best_policy=best.policy,
            best_strategy=strategy,
            best_fitness=best.fitness,
            best_net_worth=best.net_worth,
            convergence=best_history,
            average_fitness=avg_history,
            elite_fitness=elite_history,
            generations_run=generation,
            encoding=self.encoding,
            converged=converged,
            evaluations=self._evaluations,
            failed_evaluations=self._failed,
        )
