# app/schemas.py
import math
import re
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

# plain decimal or exponent notation; no underscores, hex or "nan"/"inf" words
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

Outcome = Literal["Approved", "Denied", "Review"]
CheckStatus = Literal["pass", "fail", "neutral"]


# Decision-side records are values: built once, never mutated.
class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# Tolerant base for request payloads (extra keys accepted)
class _Lenient(BaseModel):
    model_config = ConfigDict(extra="allow")


# ---- Field schema (tagged variant on `kind`)

class NumberField(_Frozen):
    kind: Literal["number"] = "number"
    id: str
    label: str
    min: Optional[float] = None
    max: Optional[float] = None
    # strict lower bound, e.g. a divisor that must stay above zero
    exclusive_min: Optional[float] = None
    placeholder: Optional[str] = None

    def coerce(self, raw: Any) -> float:
        """Raw form value -> finite float within [min, max]. Raises ValueError."""
        if isinstance(raw, bool):
            raise ValueError("expected a number")
        if isinstance(raw, (int, float)):
            value = float(raw)
        else:
            text = "" if raw is None else str(raw).strip()
            if not text:
                raise ValueError("a value is required")
            # digit grouping as typed by users: "12,00,000" / "1 200 000"
            text = text.replace(",", "").replace(" ", "")
            if not _NUMBER_RE.fullmatch(text):
                raise ValueError(f"{raw!r} is not a number")
            value = float(text)
        if not math.isfinite(value):
            raise ValueError("must be a finite number")
        if self.min is not None and value < self.min:
            raise ValueError(f"must be at least {self.min:g}")
        if self.exclusive_min is not None and value <= self.exclusive_min:
            raise ValueError(f"must be greater than {self.exclusive_min:g}")
        if self.max is not None and value > self.max:
            raise ValueError(f"must be at most {self.max:g}")
        return value


class EnumField(_Frozen):
    kind: Literal["enum"] = "enum"
    id: str
    label: str
    options: Tuple[str, ...]
    placeholder: Optional[str] = None

    def coerce(self, raw: Any) -> str:
        text = "" if raw is None else str(raw).strip()
        if not text:
            raise ValueError("a value is required")
        if text not in self.options:
            raise ValueError(f"must be one of: {', '.join(self.options)}")
        return text


FieldSpec = Annotated[Union[NumberField, EnumField], Field(discriminator="kind")]


# ---- Decision

class RuleCheck(_Frozen):
    label: str
    detail: str
    status: CheckStatus


class LegalClause(_Frozen):
    source: str
    text: str
    url: Optional[str] = None


class ResourceLink(_Frozen):
    label: str
    url: str


class DecisionRecord(_Frozen):
    scenario_id: str
    outcome: Outcome
    key_factor: str
    explanation: str
    rule_summary: str
    trace: Tuple[RuleCheck, ...]
    counterfactuals: Tuple[str, ...] = ()
    clause: LegalClause
    guidance: str
    resource: Optional[ResourceLink] = None


# ---- API payloads

class ScenarioSummary(_Frozen):
    id: str
    title: str
    description: str


class EvaluateRequest(_Lenient):
    scenario_id: str
    inputs: Dict[str, Any] = Field(default_factory=dict)


class AuditView(_Frozen):
    """Decision plus presentation metadata; never fed back into evaluation."""
    reference_id: str
    generated_at: str
    title: str
    narrative: str
    decision: DecisionRecord
