# app/services/evaluator.py
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from app.schemas import DecisionRecord
from app.services.scenario_registry import get_evaluator

logger = logging.getLogger("clearcause.evaluator")


def evaluate(scenario_id: str, raw_inputs: Optional[Mapping[str, Any]]) -> DecisionRecord:
    """
    Single entry point: scenario id + raw form values -> DecisionRecord.

    Raises:
      UnknownScenario  if the id is not in the registry
      InvalidInput     if any field is missing, malformed or degenerate
    Pure: no clock, no randomness, no state kept between calls.
    """
    decision = get_evaluator(scenario_id)(raw_inputs)
    logger.info("evaluated %s -> %s (%s)", scenario_id, decision.outcome, decision.key_factor)
    return decision
