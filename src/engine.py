"""
Day Simulator and Simulation Driver.

DaySimulator.simulate_day() applies one day's state transition in a fixed
business order. run_simulation() steps it across the horizon as a simpy
process and scores the result.
"""
#STANDARD IMPORTS

import math
import random
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

# 3rd PARTY IMPORTS

import simpy

#LOCAL IMPORTS

import config as base_config
from actions import (AdjustAllocation, AdjustBatchSize, AdjustPrice, BuyMachine, HireExpert,
                     HireRookie, OrderMaterials, PayDebt, SellMachine, TakeLoan, merge_actions)
from debt_manager import plan_debt_actions
from demand import DemandModel, remaining_demand_potential
from finance import apply_cash_interest, apply_debt_interest, financial_health, pay_debt, process_payment, take_loan
from inventory import check_and_reorder, order_materials, receive_arrivals
from logging_export import NullLogger
from objective import calculate_fitness
from pricing import current_pricing, process_sales
from production import (allocate_capacity, custom_queue_counts, effective_allocation,
                        run_custom_line, run_standard_line)
from rules_engine import Rule, RulesEngine, rule_from_dict
from state import CustomStation, MachineType, PolicyConfigurationError, SimulationState, build_initial_state
from workforce import (hire_expert, hire_rookie, overtime_active, process_training, productivity,
                       roll_quit_risk, salary_cost, update_overtime_streaks)


@dataclass
class SimulationResult:
    final_cash: float
    final_debt: float
    final_net_worth: float
    fitness_score: float
    state: SimulationState
    strategy: Any
    rules_triggered: List[Dict[str, Any]]
    config_ns: Any = None

    def summary(self) -> Dict[str, Any]:
        s = self.state
        cfg = self.config_ns or base_config
        health = financial_health(s, cfg.FINANCE_CONFIG)
        ratio = health.debt_to_asset_ratio
        return {
            "final_cash": round(self.final_cash, 2),
            "final_debt": round(self.final_debt, 2),
            "final_net_worth": round(self.final_net_worth, 2),
            "fitness_score": round(self.fitness_score, 2),
            "final_day": s.current_day,
            "days_simulated": len(s.history),
            "rejected_material_orders": s.rejected_material_orders,
            "rejected_custom_orders": s.rejected_custom_orders,
            "stockout_days": s.stockout_days,
            "lost_production_days": s.lost_production_days,
            "standard_units_completed": s.standard_units_completed,
            "custom_orders_completed": s.custom_orders_completed,
            "experts": s.workforce.experts,
            "rookies": s.workforce.rookies,
            "machines": {"MCE": s.machines.MCE, "WMA": s.machines.WMA, "PUC": s.machines.PUC},
            "debt_to_asset_ratio": round(ratio, 4) if math.isfinite(ratio) else None,
            "daily_debt_cost": round(health.daily_debt_cost, 2),
            "solvent": health.is_solvent,
            # expected custom orders between the last simulated day and the horizon
            "custom_demand_after_run": round(remaining_demand_potential(s.current_day + 1, self.strategy,
                                                                        cfg=cfg.DEMAND_CONFIG), 1),
        }


class DaySimulator:
    def __init__(self, strategy, rng: random.Random, demand_model: DemandModel,
                 rules_engine: Optional[RulesEngine] = None, logger=None, config_ns=None):
        self.strategy = strategy
        self.rng = rng
        self.demand = demand_model
        self.rules = rules_engine
        self.logger = logger if logger is not None else NullLogger()
        self.cfg = config_ns or base_config
        self._timed = defaultdict(list)
        for action in strategy.timed_actions:
            self._timed[action.day].append(action)

    # ------------------------------------------------------------------
    # Step 1 dispatch
    # ------------------------------------------------------------------
    def _dispatch(self, state: SimulationState, action) -> bool:
        """Apply one action. Returns False when the business refused it."""
        cfg = self.cfg
        if isinstance(action, TakeLoan):
            take_loan(state, action.amount, False, cfg.FINANCE_CONFIG, self.logger)
            return True
        if isinstance(action, PayDebt):
            return pay_debt(state, action.amount, self.logger).success
        if isinstance(action, HireRookie):
            for _ in range(action.count):
                hire_rookie(state, cfg.WORKFORCE_CONFIG, self.logger)
            return True
        if isinstance(action, HireExpert):
            for _ in range(action.count):
                hire_expert(state, self.logger)
            return True
        if isinstance(action, BuyMachine):
            machine = MachineType(action.machine_type)
            cost = cfg.MACHINE_PRICES[machine.value]["buy"] * action.count
            if state.cash < cost:
                self.logger.log("machine_purchase_rejected", state.current_day, machine=machine.value,
                                count=action.count, cost=cost)
                return False
            state.cash -= cost
            state.machines.adjust(machine, action.count)
            self.logger.log("machine_bought", state.current_day, machine=machine.value, count=action.count)
            return True
        if isinstance(action, SellMachine):
            machine = MachineType(action.machine_type)
            if state.machines.count(machine) < action.count:
                self.logger.log("machine_sale_rejected", state.current_day, machine=machine.value,
                                count=action.count)
                return False
            state.cash += cfg.MACHINE_PRICES[machine.value]["sell"] * action.count
            state.machines.adjust(machine, -action.count)
            self.logger.log("machine_sold", state.current_day, machine=machine.value, count=action.count)
            return True
        if isinstance(action, OrderMaterials):
            return order_materials(state, action.quantity, cfg.MATERIAL_CONFIG, self.logger) is not None
        if isinstance(action, AdjustBatchSize):
            self.strategy.standard_batch_size = max(0, int(action.new_size))
            return True
        if isinstance(action, AdjustAllocation):
            self.strategy.mce_allocation_custom = min(1.0, max(0.0, action.new_allocation))
            return True
        if isinstance(action, AdjustPrice):
            if action.product_type == "standard":
                self.strategy.standard_price = action.new_price
            elif action.product_type == "custom":
                self.strategy.custom_base_price = action.new_price
            else:
                raise PolicyConfigurationError(f"Unknown product type '{action.product_type}'")
            return True
        raise TypeError(f"Unhandled action type {type(action).__name__}")

    def _actions_for(self, state: SimulationState) -> List:
        day = state.current_day
        actions = list(self._timed.get(day, []))
        if self.rules is not None:
            actions.extend(self.rules.evaluate(state, day))
        actions.extend(plan_debt_actions(state, self.strategy, self.logger, cfg=self.cfg).actions(day))
        return merge_actions(actions)

    # ------------------------------------------------------------------
    # One day
    # ------------------------------------------------------------------
    def simulate_day(self, state: SimulationState) -> Dict[str, Any]:
        cfg = self.cfg
        strategy = self.strategy
        day = state.current_day
        opening_debt = state.debt

        # 1. timed, rule and debt-manager actions
        performed = []
        for action in self._actions_for(state):
            if self._dispatch(state, action):
                performed.append(action)
                state.history.actions_performed.append((day, action))
        machine_spend = sum(cfg.MACHINE_PRICES[MachineType(a.machine_type).value]["buy"] * a.count
                            for a in performed if isinstance(a, BuyMachine))

        # 2. materials ordered lead-time days ago
        arrived = receive_arrivals(state, self.logger)

        # 3. training and promotions
        process_training(state, self.logger)

        # 4. salaries and overtime
        worked_overtime = overtime_active(state, strategy, cfg.PRODUCTION_CONFIG)
        overtime_hours = strategy.overtime_hours if worked_overtime else 0.0
        salaries = salary_cost(state, overtime_hours, cfg.WORKFORCE_CONFIG)
        process_payment(state, salaries.total, "Daily salaries", cfg.FINANCE_CONFIG, self.logger)

        # 5. overtime streaks and attrition
        update_overtime_streaks(state, worked_overtime)
        quits = roll_quit_risk(state, strategy, self.rng, self.logger)

        # 6. interest on the start-of-day debt
        interest_paid = apply_debt_interest(state, opening_debt, cfg.FINANCE_CONFIG, self.logger)

        # 7. reorder point
        check_and_reorder(state, strategy, cfg.MATERIAL_CONFIG, self.logger)

        # 8. demand
        demand = self.demand.for_day(day, strategy.standard_price)

        # 9. capacity split
        allocation = effective_allocation(state, strategy, cfg.ALLOCATION_BOUNDS, cfg.ALLOCATION_NUDGES)
        labor = productivity(state, overtime_hours, cfg.WORKFORCE_CONFIG)
        capacity = allocate_capacity(state, allocation, labor, cfg.PRODUCTION_CONFIG)

        # 10. standard line first, then custom
        std = run_standard_line(state, strategy, capacity.machine_standard, capacity.labor_standard,
                                cfg.PRODUCTION_CONFIG)
        cus = run_custom_line(state, demand["custom"], capacity.machine_custom, capacity.labor_custom,
                              cfg.PRODUCTION_CONFIG, self.logger)
        if std.material_short or cus.material_short:
            state.lost_production_days += 1
        if state.raw_material_inventory == 0:
            state.stockout_days += 1
            self.logger.log("stockout", day, pending=len(state.pending_material_orders))

        # 11. prices
        pricing = current_pricing(strategy, cus.avg_delivery_time, cfg.PRICING_CONFIG)

        # 12. sales
        sales = process_sales(state, pricing, demand["standard"])

        # 13. interest on the end-of-day cash
        interest_earned = apply_cash_interest(state, cfg.FINANCE_CONFIG)

        # 14. history
        material_cost = sum(o.cost for o in state.pending_material_orders if o.order_day == day)
        queues = custom_queue_counts(state)
        wip = state.standard_wip
        metrics = {
            "cash": state.cash,
            "debt": state.debt,
            "net_worth": state.net_worth,
            "revenue": sales.total_revenue,
            "expenses": salaries.total + interest_paid + material_cost + machine_spend,
            "interest_paid": interest_paid,
            "interest_earned": interest_earned,
            "salary_cost": salaries.total,
            "standard_produced": std.units_completed,
            "custom_produced": cus.completed,
            "standard_started": std.units_started,
            "custom_started": cus.started,
            "standard_sold": sales.standard_sold,
            "custom_sold": sales.custom_sold,
            "standard_wip": wip.total_units(),
            "std_queue_pre": wip.units_at(wip.pre_stage),
            "std_queue_1": wip.units_at(wip.stage1),
            "std_queue_2": wip.units_at(wip.stage2),
            "std_queue_3": wip.units_at(wip.stage3),
            "custom_wip": len(state.custom_wip.orders),
            "custom_queue_waiting": queues[CustomStation.WAITING],
            "custom_queue_mce": queues[CustomStation.MCE],
            "custom_queue_wma": queues[CustomStation.WMA_PASS1] + queues[CustomStation.WMA_PASS2],
            "custom_queue_puc": queues[CustomStation.PUC],
            "finished_standard": state.finished_goods.standard,
            "finished_custom": state.finished_goods.custom,
            "raw_material": state.raw_material_inventory,
            "material_arrived": sum(o.quantity for o in arrived),
            "material_orders_placed": sum(1 for o in state.pending_material_orders if o.order_day == day),
            "material_cost": material_cost,
            "material_used": std.material_used + cus.material_used,
            "experts": state.workforce.experts,
            "rookies": state.workforce.rookies,
            "rookies_in_training": len(state.workforce.rookies_in_training),
            "quits": quits,
            "overtime": worked_overtime,
            "labor_capacity": labor,
            "labor_used": std.labor_used + cus.labor_used,
            "idle": labor > 0 and std.labor_used + cus.labor_used == 0,
            "mce_count": state.machines.MCE,
            "wma_count": state.machines.WMA,
            "puc_count": state.machines.PUC,
            "allocation": allocation,
            "standard_price": pricing.standard_price,
            "custom_price": pricing.custom_price,
            "custom_delivery_time": cus.avg_delivery_time,
            "standard_demand": demand["standard"],
            "custom_demand": demand["custom"],
            "custom_accepted": cus.accepted,
            "custom_rejected": cus.rejected,
            "reorder_point": strategy.reorder_point,
            "order_quantity": strategy.order_quantity,
            "batch_size": strategy.standard_batch_size,
            "actions": len(performed),
        }
        state.history.record(day, metrics)
        return metrics


def _day_process(env, simulator: DaySimulator, state: SimulationState, end_day: int):
    while state.current_day <= end_day:
        simulator.simulate_day(state)
        if state.current_day == end_day:
            break
        state.current_day += 1
        yield env.timeout(1)


def run_simulation(strategy, end_day: Optional[int] = None, initial_state: Optional[SimulationState] = None,
                   demand_forecast: Optional[List[Dict]] = None, seed: Optional[int] = None,
                   logger=None, config_ns=None) -> SimulationResult:
    """
    Run one strategy from a starting state through `end_day` (inclusive).

    The caller's strategy and starting state are never mutated. Configuration
    problems raise PolicyConfigurationError before the first day executes.
    """
    cfg = config_ns or base_config
    end_day = cfg.SIMULATION_END_DAY if end_day is None else end_day
    run_strategy = strategy.clone()
    run_strategy.validate()
    if initial_state is None:
        state = build_initial_state(cfg.INITIAL_STATE_SCENARIO)
    else:
        state = initial_state.clone()
    if end_day < state.current_day:
        raise PolicyConfigurationError(f"end_day {end_day} is before the start day {state.current_day}")

    rng = random.Random(seed)
    demand_model = DemandModel(run_strategy, rng, demand_forecast, cfg.DEMAND_CONFIG)
    rules = None
    if run_strategy.rules:
        rules = RulesEngine([r if isinstance(r, Rule) else rule_from_dict(r) for r in run_strategy.rules], logger)
    simulator = DaySimulator(run_strategy, rng, demand_model, rules, logger, cfg)

    env = simpy.Environment()
    env.process(_day_process(env, simulator, state, end_day))
    env.run()

    return SimulationResult(
        final_cash=state.cash,
        final_debt=state.debt,
        final_net_worth=state.net_worth,
        fitness_score=calculate_fitness(state, cfg.FITNESS_CONFIG, cfg.MATERIAL_CONFIG, cfg.PRODUCTION_CONFIG),
        state=state,
        strategy=run_strategy,
        rules_triggered=rules.execution_stats() if rules else [],
        config_ns=config_ns,
    )


def evaluate_strategy(strategy, end_day: Optional[int] = None, initial_state: Optional[SimulationState] = None,
                      demand_forecast: Optional[List[Dict]] = None, seed: Optional[int] = None,
                      config_ns=None) -> float:
    return run_simulation(strategy, end_day, initial_state, demand_forecast, seed,
                          config_ns=config_ns).fitness_score
