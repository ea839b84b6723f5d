from .types import PlannerConfig, QueryPlan, DEFAULT_TEMPLATES
from .config import build_planner_config
from .planner import QueryPlanner

__all__ = [
    "PlannerConfig",
    "QueryPlan",
    "DEFAULT_TEMPLATES",
    "build_planner_config",
    "QueryPlanner",
]
