# app/services/errors.py
from __future__ import annotations

from typing import Dict, List


class EvaluationError(Exception):
    pass


class UnknownScenario(EvaluationError, LookupError):
    def __init__(self, scenario_id: str):
        self.scenario_id = scenario_id
        super().__init__(f"Unknown scenario: {scenario_id!r}")


class InvalidInput(EvaluationError, ValueError):
    """One or more form values rejected before any rule runs.

    `errors`: [{"field": <field id>, "message": <reason>}], in schema order.
    """

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = list(errors)
        detail = "; ".join(f"{e['field']}: {e['message']}" for e in self.errors)
        super().__init__(f"Invalid input ({detail})")

    @classmethod
    def for_field(cls, field: str, message: str) -> "InvalidInput":
        return cls([{"field": field, "message": message}])

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors]
