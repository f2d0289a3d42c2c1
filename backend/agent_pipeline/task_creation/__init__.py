"""
Task Creation Package
═════════════════════

  strategies.py   task templates + per-analysis-type emission rules
  coordinator.py  agent routing, reservations, ordered task queue
"""

from agent_pipeline.task_creation.coordinator import (
    StrategyFailure,
    TaskCreationCoordinator,
    TaskCreationReport,
    order_tasks,
)
from agent_pipeline.task_creation.strategies import (
    DEFAULT_STRATEGIES,
    TaskCreationStrategy,
    calculate_priority,
    estimate_complexity,
)

__all__ = [
    "DEFAULT_STRATEGIES",
    "StrategyFailure",
    "TaskCreationCoordinator",
    "TaskCreationReport",
    "TaskCreationStrategy",
    "calculate_priority",
    "estimate_complexity",
    "order_tasks",
]
