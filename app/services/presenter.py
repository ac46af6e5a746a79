# app/services/presenter.py
from __future__ import annotations

import random
from datetime import datetime
from typing import Any, Dict, Optional

from app.schemas import AuditView, DecisionRecord

OUTCOME_TITLES = {
    "Approved": "Decision: Approved",
    "Denied": "Decision: Not Eligible",
    "Review": "Decision: Under Review",
}
OUTCOME_CLASSES = {"Approved": "approved", "Denied": "denied", "Review": "review"}
STATUS_MARKS = {"pass": "✔", "fail": "✘", "neutral": "●"}


def new_reference_id(rng: Optional[random.Random] = None) -> str:
    """REF-######-AUD, six random digits. Display only."""
    r = rng or random
    return f"REF-{r.randint(0, 999999):06d}-AUD"


def format_timestamp(ts: datetime) -> str:
    return ts.strftime("%d/%m/%Y, %I:%M:%S %p")


def narrative(title: str, decision: DecisionRecord) -> str:
    return (
        "Based on the information provided, the system evaluated your application "
        f"against the standard {title} criteria. {decision.explanation}"
    )


def build_audit_view(
    decision: DecisionRecord,
    title: str,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> AuditView:
    # timestamp and reference id are attached here, after evaluation
    return AuditView(
        reference_id=new_reference_id(rng),
        generated_at=format_timestamp(now or datetime.now()),
        title=title,
        narrative=narrative(title, decision),
        decision=decision,
    )


def view_context(audit: AuditView) -> Dict[str, Any]:
    """Template variables shared by the HTML result card and the audit PDF."""
    outcome = audit.decision.outcome
    return {
        "audit": audit,
        "decision": audit.decision,
        "outcome_title": OUTCOME_TITLES[outcome],
        "outcome_class": OUTCOME_CLASSES[outcome],
        "status_marks": STATUS_MARKS,
    }
