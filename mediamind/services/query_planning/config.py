from __future__ import annotations

import os

import structlog

from mediamind.core import config as core_config

from .types import PlannerConfig


logger = structlog.get_logger(__name__)


def build_planner_config(*, base: PlannerConfig | None = None) -> PlannerConfig:
    cfg = PlannerConfig(
        max_queries_per_type=core_config.PLANNER_MAX_QUERIES_PER_TYPE,
        enable_llm=core_config.PLANNER_USE_LLM,
        timeout_sec=core_config.PLANNER_TIMEOUT_SEC,
    ) if base is None else PlannerConfig(
        max_queries_per_type=base.max_queries_per_type,
        enable_llm=base.enable_llm,
        timeout_sec=base.timeout_sec,
        templates={mt: list(t) for mt, t in base.templates.items()},
    )

    # Environment overrides
    max_env = os.getenv("PLANNER_MAX_QUERIES_PER_TYPE")
    if max_env:
        try:
            cfg.max_queries_per_type = min(10, max(1, int(max_env)))
        except Exception as exc:
            logger.warning(
                "Invalid PLANNER_MAX_QUERIES_PER_TYPE override ignored",
                raw_value=max_env,
                error=str(exc),
            )

    timeout_env = os.getenv("PLANNER_TIMEOUT_SEC")
    if timeout_env:
        try:
            value = float(timeout_env)
            if value <= 0:
                raise ValueError("timeout must be positive")
            cfg.timeout_sec = value
        except Exception as exc:
            logger.warning(
                "Invalid PLANNER_TIMEOUT_SEC override ignored",
                raw_value=timeout_env,
                error=str(exc),
            )

    llm_flag = os.getenv("PLANNER_USE_LLM")
    if llm_flag is not None:
        cfg.enable_llm = llm_flag.lower() in {"1", "true", "yes"}

    return cfg


__all__ = ["build_planner_config"]
