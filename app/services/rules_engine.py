# app/services/rules_engine.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Sequence

from app.schemas import DecisionRecord, LegalClause, ResourceLink
from app.services.errors import InvalidInput
from app.services.explain_formatter import (
    final_determination,
    format_inr,
    format_number,
    format_percent,
    render,
    trace_entry,
)

logger = logging.getLogger("clearcause.rules")


@dataclass(frozen=True)
class CheckResult:
    """One evaluated condition. `key` points at its texts in the rule table;
    `values` are the already formatted placeholders for those texts."""

    key: str
    passed: bool
    values: Dict[str, str] = field(default_factory=dict)
    soft: bool = False
    informational: bool = False

    @property
    def status(self) -> str:
        if self.passed:
            return "pass"
        if self.soft or self.informational:
            return "neutral"
        return "fail"

    @property
    def blocking(self) -> bool:
        return not self.passed and not self.informational


RuleFunction = Callable[[Mapping[str, Any], Mapping[str, Any]], List[CheckResult]]


# -------- inputs --------

def coerce_inputs(fields: Sequence[Any], raw: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Coerce every declared field; collect all failures before raising."""
    raw = raw or {}
    values: Dict[str, Any] = {}
    errors: List[Dict[str, str]] = []
    for f in fields:
        try:
            values[f.id] = f.coerce(raw.get(f.id))
        except ValueError as e:
            errors.append({"field": f.id, "message": str(e)})
    if errors:
        raise InvalidInput(errors)
    return values


# -------- scenario rules (returned in precedence order) --------

def business_grant_rules(v: Mapping[str, Any], p: Mapping[str, Any]) -> List[CheckResult]:
    revenue, years, employees, sector = v["revenue"], v["years"], v["employees"], v["sector"]
    max_revenue = p["max_revenue"]
    min_years = p["min_years"]
    min_employees = p["min_employees"]
    sectors = tuple(p["priority_sectors"])
    return [
        CheckResult("revenue", revenue < max_revenue, {
            "value": format_inr(revenue, max_revenue),
            "threshold": format_inr(max_revenue),
        }),
        CheckResult("years", years >= min_years, {
            "value": format_number(years, min_years),
            "threshold": format_number(min_years),
            "remaining": format_number(max(min_years - years, 0), 0),
        }),
        CheckResult("employees", employees >= min_employees, {
            "value": format_number(employees, min_employees),
            "threshold": format_number(min_employees),
        }),
        CheckResult("sector", sector in sectors, {
            "value": sector,
            "threshold": ", ".join(sectors),
        }, soft=True),
    ]


def housing_loan_rules(v: Mapping[str, Any], p: Mapping[str, Any]) -> List[CheckResult]:
    score, income, debt = v["creditScore"], v["income"], v["debt"]
    min_score = p["min_score"]
    max_dti = p["max_dti"]
    if income <= 0:
        raise InvalidInput.for_field("income", "must be greater than 0")
    # debt / (income / 12) * 100 <= max_dti, without the division
    dti_ok = debt * 1200 <= max_dti * income
    dti = debt * 1200 / income
    # whole rupees, rounded up: at least 1 whenever the ratio fails
    reduction = 0 if dti_ok else max(math.ceil(debt - income * max_dti / 1200), 1)
    return [
        CheckResult("credit_score", score >= min_score, {
            "value": format_number(score, min_score),
            "threshold": format_number(min_score),
            "score": format_number(score, min_score),
        }),
        CheckResult("dti", dti_ok, {
            "value": format_percent(dti, max_dti),
            "threshold": format_number(max_dti),
            "dti": format_percent(dti, max_dti),
            "max_dti": format_number(max_dti),
            "reduction": format_inr(reduction),
        }),
    ]


def student_loan_rules(v: Mapping[str, Any], p: Mapping[str, Any]) -> List[CheckResult]:
    admission, fees, parent_income = v["admission"], v["fees"], v["parentIncome"]
    collateral_free = p["max_loan_without_collateral"]
    subsidy_limit = p["income_subsidy_limit"]
    return [
        CheckResult("admission", admission == "Yes", {"value": admission}),
        CheckResult("fees", fees <= collateral_free, {
            "value": format_inr(fees, collateral_free),
            "threshold": format_inr(collateral_free),
        }, soft=True),
        CheckResult("subsidy", parent_income < subsidy_limit, {
            "value": format_inr(parent_income, subsidy_limit),
            "threshold": format_inr(subsidy_limit),
        }, informational=True),
    ]


def scholarship_rules(v: Mapping[str, Any], p: Mapping[str, Any]) -> List[CheckResult]:
    percentage, income = v["percentage"], v["income"]
    min_percentage = p["min_percentage"]
    max_income = p["max_income"]
    return [
        CheckResult("percentage", percentage >= min_percentage, {
            "value": format_number(percentage, min_percentage),
            "threshold": format_number(min_percentage),
            "percentage": format_number(percentage, min_percentage),
        }),
        CheckResult("income", income < max_income, {
            "value": format_inr(income, max_income),
            "threshold": format_inr(max_income),
            "max_income": format_inr(max_income),
        }),
    ]


RULE_FUNCTIONS: Dict[str, RuleFunction] = {
    "business_grant": business_grant_rules,
    "housing_loan": housing_loan_rules,
    "student_loan": student_loan_rules,
    "scholarship": scholarship_rules,
}


# -------- decision --------

def decide(scenario: Any, checks: Sequence[CheckResult]) -> DecisionRecord:
    """
    Outcome from checks already in precedence order:
      - first blocking check decides: soft -> Review, hard -> Denied
      - none blocking -> Approved; a satisfied informational check supplies
        the approved texts (e.g. interest subsidy)
    Every check stays in the trace with its own status.
    """
    texts = scenario.texts
    check_texts = texts["checks"]

    deciding = next((c for c in checks if c.blocking), None)
    if deciding is None:
        outcome = "Approved"
        bonus = next((c for c in checks if c.informational and c.passed), None)
        if bonus is not None:
            block, values = check_texts[bonus.key], bonus.values
        else:
            merged: Dict[str, str] = {}
            for c in checks:
                merged.update(c.values)
            block, values = texts["approved"], merged
    else:
        outcome = "Review" if deciding.soft else "Denied"
        block, values = check_texts[deciding.key], deciding.values

    trace = [
        trace_entry(
            check_texts[c.key]["label"],
            render(check_texts[c.key]["detail"], c.values),
            c.status,
        )
        for c in checks
    ]
    conditions = sum(1 for c in checks if not c.informational)
    trace.append(final_determination(outcome, block["key_factor"], conditions))

    counterfactuals = tuple(
        render(check_texts[c.key]["counterfactual"], c.values) for c in checks if c.blocking
    )
    resource = block.get("resource") or texts.get("resource")

    logger.debug("scenario=%s outcome=%s key_factor=%s", scenario.id, outcome, block["key_factor"])
    return DecisionRecord(
        scenario_id=scenario.id,
        outcome=outcome,
        key_factor=block["key_factor"],
        explanation=render(block["explanation"], values),
        rule_summary=block.get("summary") or texts["summary"],
        trace=tuple(trace),
        counterfactuals=counterfactuals,
        clause=LegalClause(**block["clause"]),
        guidance=render(block["guidance"], values),
        resource=ResourceLink(**resource) if resource else None,
    )


def run_scenario(scenario: Any, raw_inputs: Mapping[str, Any] | None) -> DecisionRecord:
    """Coerce -> derive -> check -> decide. Input errors surface before any check."""
    values = coerce_inputs(scenario.fields, raw_inputs)
    checks = scenario.rules(values, scenario.params)
    return decide(scenario, checks)
