# ======================================================================================
# MASTER CONFIGURATION FILE for the Two-Product Factory Simulator
# ======================================================================================
# This file centralizes all parameters for the simulation and the policy search.
# By modifying this file (or overriding keys from a scenario file, see scenarios.py),
# one can control every aspect of a run without altering the core source code.
#
# Each section is documented with the modules that read it.
# ======================================================================================

# IMPORTS
from pathlib import Path

# --------------------------------------------------------------------------------------
# 1. CORE SIMULATION & SCENARIO CONTROL
# --------------------------------------------------------------------------------------
# High-level parameters that define the simulation's execution scope.
# Used by: engine.py run_simulation(), scenarios.py
# --------------------------------------------------------------------------------------

BASE_DIR = Path(__file__).resolve().parents[1] # TO ENTER PARENT DIRECTORY

SIMULATION_START_DAY = 51 # First managed day (days 1-50 are history)
SIMULATION_END_DAY = 450  # Inclusive, 400 managed days
RANDOM_SEED = 42
VERBOSE = False # True prints a prefixed line for every logged event

# Starting point of a run.
    # Options:
    # - 'historical': state observed on day 51 of a successful run (default)
    # - 'business_case': textbook starting point with $70K debt
INITIAL_STATE_SCENARIO = 'historical'

# --------------------------------------------------------------------------------------
# 2. FINANCE
# --------------------------------------------------------------------------------------
# Used by: finance.py, debt_manager.py
# --------------------------------------------------------------------------------------

FINANCE_CONFIG = {
    "debt_interest_daily": 0.001,   # 0.1% per day on the start-of-day balance
    "cash_interest_daily": 0.0005,  # 0.05% per day on positive end-of-day cash
    "normal_commission": 0.02,      # Commission on voluntary loans
    "salary_commission": 0.05,      # Commission on automatic loans taken to cover a payment
    "residue_epsilon": 1e-9,        # Cash residue below this is forced to zero
}

# --------------------------------------------------------------------------------------
# 3. RAW MATERIALS
# --------------------------------------------------------------------------------------
# Used by: inventory.py, objective.py, policy_engine.py
# --------------------------------------------------------------------------------------

MATERIAL_CONFIG = {
    "unit_cost": 50.0,
    "order_fee": 1000.0,
    "lead_time_days": 4,
    "min_days_between_orders": 5,
}

# --------------------------------------------------------------------------------------
# 4. PRODUCTION
# --------------------------------------------------------------------------------------
# Station layout of both lines. The MCE stage and the ARCP labor pool are shared.
# Used by: production.py, workforce.py, objective.py
# --------------------------------------------------------------------------------------

PRODUCTION_CONFIG = {
    "standard_material_per_unit": 2,
    "custom_material_per_unit": 1,
    "mce_units_per_machine": 30,           # Daily MCE throughput per machine
    "standard_stage2_batching_days": 4,    # WMA batching on the standard line
    "standard_stage3_batching_days": 1,    # PUC batching on the standard line
    "custom_max_wip": 360,                 # Hard ceiling on open custom orders
    "custom_min_production_days": 5,
    "custom_wma_units_per_machine": 6,
    "custom_puc_units_per_machine": 6,
    "custom_station_days": 1,              # Minimum dwell time per custom station
}

# Bounds on the custom share of MCE and labor capacity after dynamic adjustment.
ALLOCATION_BOUNDS = (0.2, 0.8)

# Queue-pressure nudges applied to the base allocation every day.
ALLOCATION_NUDGES = {
    "custom_wip_critical": 300, "critical_boost": 0.05,
    "custom_wip_warning": 250, "warning_boost": 0.03,
    "standard_fg_low": 50, "standard_wip_low": 100, "standard_relief": 0.10,
}

# --------------------------------------------------------------------------------------
# 5. MACHINES
# --------------------------------------------------------------------------------------
# Used by: engine.py (BuyMachine / SellMachine dispatch)
# --------------------------------------------------------------------------------------

MACHINE_PRICES = {
    "MCE": {"buy": 20000.0, "sell": 10000.0},
    "WMA": {"buy": 15000.0, "sell": 7500.0},
    "PUC": {"buy": 12000.0, "sell": 4000.0},
}

# --------------------------------------------------------------------------------------
# 6. WORKFORCE
# --------------------------------------------------------------------------------------
# Used by: workforce.py, debt_manager.py
# --------------------------------------------------------------------------------------

WORKFORCE_CONFIG = {
    "expert_salary": 150.0,        # per day
    "rookie_salary": 85.0,         # per day
    "overtime_multiplier": 1.5,
    "hours_per_shift": 8,
    "expert_productivity": 3.0,    # ARCP units per expert per day
    "rookie_factor": 0.4,          # Rookie output as a share of an expert
    "training_days": 15,
}

# Quit-risk model. One authoritative set: 5 consecutive overtime days, then 10%/day.
QUIT_RISK = {
    "overtime_trigger_days": 5,
    "daily_quit_probability": 0.10,
}

# --------------------------------------------------------------------------------------
# 7. DEMAND & PRICING
# --------------------------------------------------------------------------------------
# Used by: demand.py, pricing.py, strategy.py
# --------------------------------------------------------------------------------------

DEMAND_CONFIG = {
    "phase1_end_day": 172,         # Stable phase 1 ends
    "phase2_end_day": 218,         # Linear transition ends
    "phase3_end_day": 400,         # Stable phase 3 ends, runoff begins
    "custom_mean1": 25.0,
    "custom_std1": 5.0,
    "custom_mean2": 32.5,
    "custom_std2": 6.5,
    "runoff_decay": 0.95,          # Mean multiplier per runoff period
    "runoff_period_days": 30,
    "runoff_floor": 2.0,
    "standard_intercept": 1500.0,  # Q = intercept + slope * P
    "standard_slope": -5.0,
    "forecast_min_day": 51,
    "forecast_max_day": 500,
}

PRICING_CONFIG = {
    "standard_market_price": 225.0,
    "custom_base_price": 106.56,
    "custom_penalty_per_day": 0.27,
    "custom_target_delivery_days": 5.0,
    "custom_price_floor_ratio": 0.5,
}

# --------------------------------------------------------------------------------------
# 8. DEBT MANAGEMENT
# --------------------------------------------------------------------------------------
# Defaults for the strategy-level debt manager (debt_manager.py).
# --------------------------------------------------------------------------------------

DEBT_MANAGEMENT = {
    "auto_debt_paydown": False,
    "min_cash_reserve_days": 5,
    "debt_paydown_aggressiveness": 0.80,
    "preemptive_wage_loan_days": 4,
    "max_debt_threshold": 200000.0,
    "emergency_loan_buffer": 25000.0,
}

# --------------------------------------------------------------------------------------
# 9. POLICY ENGINE
# --------------------------------------------------------------------------------------
# Business-state buckets and the multipliers they apply to the base parameters.
# Values at or above HIGH are HIGH, below LOW are LOW, MEDIUM otherwise.
# Used by: policy_engine.py
# --------------------------------------------------------------------------------------

STATE_THRESHOLDS = {
    "cash": {"low": 80000.0, "high": 200000.0},
    "inventory": {"low": 200, "high": 500},
    "debt": {"low": 50000.0, "high": 150000.0},
}

STATE_MULTIPLIERS = {
    "cash": {"LOW": 0.7, "MEDIUM": 1.0, "HIGH": 1.2},
    "inventory": {"LOW": 1.3, "MEDIUM": 1.0, "HIGH": 0.7},
    "debt": {"LOW": 1.1, "MEDIUM": 1.0, "HIGH": 0.8},
}

POLICY_CONFIG = {
    "weeks": 52,
    "max_hires_per_day": 5,
    "loan_debt_ceiling": 200000.0,  # No policy loans above this debt
    "min_repayment": 1000.0,
    "material_order_spacing": 5,
    "allocation_clamp": (0.2, 0.8),
}

# Search space of the 15 policy parameters: (min, max, kind)
PARAMETER_SPACE = {
    "reorder_point": (200, 600, "int"),
    "order_quantity": (300, 800, "int"),
    "safety_stock": (100, 300, "int"),
    "mce_custom_allocation": (0.4, 0.7, "real"),
    "standard_batch_size": (50, 120, "int"),
    "batch_interval": (6, 12, "int"),
    "target_experts": (1, 50, "int"),
    "hire_threshold": (0.3, 1.0, "real"),
    "max_overtime_hours": (0.0, 12.0, "real"),
    "overtime_threshold": (0.5, 1.0, "real"),
    "cash_reserve_target": (15000, 35000, "int"),
    "loan_amount": (20000, 50000, "int"),
    "repay_threshold": (70000, 120000, "int"),
    "standard_price_multiplier": (0.9, 1.1, "real"),
    "custom_base_price": (105.0, 115.0, "real"),
}

DEFAULT_POLICY = {
    "reorder_point": 400,
    "order_quantity": 500,
    "safety_stock": 200,
    "mce_custom_allocation": 0.55,
    "standard_batch_size": 80,
    "batch_interval": 8,
    "target_experts": 12,
    "hire_threshold": 0.8,
    "max_overtime_hours": 2.0,
    "overtime_threshold": 0.85,
    "cash_reserve_target": 25000,
    "loan_amount": 30000,
    "repay_threshold": 90000,
    "standard_price_multiplier": 1.0,
    "custom_base_price": 110.0,
}

# --------------------------------------------------------------------------------------
# 10. FITNESS
# --------------------------------------------------------------------------------------
# Used by: objective.py
# --------------------------------------------------------------------------------------

FITNESS_CONFIG = {
    "bankruptcy_score": -1000000.0,
    "rejected_order_penalty": 250.0,     # per rejected material order or custom order
    "stockout_day_penalty": 500.0,
    "lost_production_day_penalty": 500.0,
}

# --------------------------------------------------------------------------------------
# 11. SEARCH STRATEGIES
# --------------------------------------------------------------------------------------
# Used by: genetic_algorithm.py, guided_search.py
# --------------------------------------------------------------------------------------

GA_CONFIG = {
    "encoding": "flat",            # Genome: "flat" (15), "tripled" (45, per cash bucket) or "weekly" (15 per week)
    "population_size": 40,
    "generations": 30,
    "mutation_rate": 0.05,
    "crossover_rate": 0.7,
    "elite_count": 4,
    "tournament_size": 3,
    "convergence_threshold": 1.0,  # Best-fitness gain over the last 5 generations
    "convergence_window": 5,
    "mutation_scale": 0.10,        # Gaussian step as a share of the parameter range
    "seed_policy": "fixed",        # Common simulation seed so candidates compare on the same demand draw
    "max_workers": 4,
    "executor": "thread",          # 'thread' or 'process'
}

GUIDED_SEARCH_CONFIG = {
    "encoding": "flat",
    "total_iterations": 150,
    "random_iterations": 30,
    "batch_size": 8,               # Candidates evaluated per pool round
    "local_share": 0.65,
    "crossover_share": 0.25,       # Remaining share is fresh random sampling
    "local_top_k": 3,
    "crossover_top_k": 5,
    "feasibility_top_k": 10,
    "mutation_probability": 0.4,
    "base_intensity": 0.15,
    "stagnation_intensity": 0.25,
    "stagnation_window": 50,
    "forced_random_stagnation": 20,
    "use_memory": True,
    "seed_policy": "fixed",
    "validation_runs": 10,
    "max_workers": 4,
    "executor": "thread",
}

# --------------------------------------------------------------------------------------
# 12. MEMORY STORE
# --------------------------------------------------------------------------------------
# Used by: memory_store.py
# --------------------------------------------------------------------------------------

MEMORY_CONFIG = {
    "path": BASE_DIR / "data" / "optimizer_memory.json",
    "similarity_threshold": 0.95,
    "quality_ratio": 0.8,          # New records must reach 80% of the average fitness
    "quality_min_records": 5,      # Gate applies once more than this many records exist
    "max_records_per_context": 50,
    "warm_start_count": 10,
    "sim_version": "1.0",
}

# --------------------------------------------------------------------------------------
# 13. BUSINESS RULES
# --------------------------------------------------------------------------------------
# Used by: business_rules.py
# --------------------------------------------------------------------------------------

BUSINESS_RULES = {
    # Customer service (CRITICAL)
    "max_custom_delivery_days": 7,
    "min_custom_service_level": 0.90,
    "custom_on_time_days": 5,
    # Financial health (CRITICAL)
    "min_cash_threshold": -50000.0,
    # Inventory (MAJOR)
    "max_consecutive_stockout_days": 2,
    "max_stockout_days_per_100": 5,
    # Production (MAJOR)
    "min_production_utilization": 0.50,
    # Mission alignment (MAJOR)
    "max_orders_rejected_per_100_days": 10,
    "min_custom_production_ratio": 0.15,
    # Warnings
    "max_debt_to_revenue_ratio": 5.0,   # Against trailing 30-day revenue
    "min_safety_stock_days": 2,
    "max_custom_backlog_days": 14,
    "max_idle_workforce_days": 7,
}

# --------------------------------------------------------------------------------------
# 14. OUTPUT
# --------------------------------------------------------------------------------------
# Used by: logging_export.py, experiment.py
# --------------------------------------------------------------------------------------

OUTPUT_DIR = BASE_DIR / "output"
CHART_CONFIG = {
    "dpi": 120,
    "figsize": (10, 5),
}
