# app/services/scenario_registry.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import TypeAdapter, ValidationError

from app.schemas import DecisionRecord, FieldSpec, ScenarioSummary
from app.services.errors import UnknownScenario
from app.services.rules_engine import RULE_FUNCTIONS, RuleFunction, run_scenario

logger = logging.getLogger("clearcause.registry")

APP_DIR = Path(__file__).resolve().parents[1]   # .../app
RULES_DIR = APP_DIR.parent / "rules"            # .../rules
SCENARIOS_DIR = RULES_DIR / "scenarios"
CATALOG = SCENARIOS_DIR / "catalog.yml"

_FIELD_ADAPTER = TypeAdapter(FieldSpec)

CHECK_TEXT_KEYS = ("label", "detail", "key_factor", "explanation", "guidance", "clause")
CLAUSE_KEYS = ("source", "text")


@dataclass(frozen=True)
class ScenarioDefinition:
    id: str
    title: str
    description: str
    fields: Tuple[Any, ...]
    params: Mapping[str, Any]
    texts: Mapping[str, Any]
    rules: RuleFunction

    def evaluate(self, raw_inputs: Optional[Mapping[str, Any]]) -> DecisionRecord:
        return run_scenario(self, raw_inputs)


# -------------------- local helpers --------------------

def _load_yaml(p: Path) -> Dict[str, Any]:
    if not p.exists():
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    return data if isinstance(data, dict) else {}


def _freeze(obj: Any) -> Any:
    """Read-only view of a YAML tree: dict -> mappingproxy, list -> tuple."""
    if isinstance(obj, dict):
        return MappingProxyType({k: _freeze(v) for k, v in obj.items()})
    if isinstance(obj, list):
        return tuple(_freeze(x) for x in obj)
    return obj


def _check_clause(where: str, clause: Any) -> List[str]:
    if not isinstance(clause, dict):
        return [f"{where}.clause: must be a mapping"]
    return [f"{where}.clause: missing '{k}'" for k in CLAUSE_KEYS if not clause.get(k)]


def validate_scenario_doc(doc: Dict[str, Any]) -> List[str]:
    """
    Structural problems of one rule document (empty list = OK).
      meta{id,title,description,informational_checks?} · fields[] · params{}
      · summary · approved{} · checks{}
    Blocking checks need a `counterfactual`; informational ones do not.
    """
    problems: List[str] = []
    if not isinstance(doc, dict) or not doc:
        return ["document is empty or not a mapping"]

    meta = doc.get("meta") or {}
    informational = tuple(meta.get("informational_checks") or ())
    for k in ("id", "title", "description"):
        if not meta.get(k):
            problems.append(f"meta: missing '{k}'")

    fields = doc.get("fields")
    if not isinstance(fields, list) or not fields:
        problems.append("fields: must be a non-empty list")
    else:
        seen = set()
        for i, f in enumerate(fields):
            try:
                spec = _FIELD_ADAPTER.validate_python(f)
            except ValidationError as e:
                problems.append(f"fields[{i}]: {e.errors()[0].get('msg')}")
                continue
            if spec.id in seen:
                problems.append(f"fields[{i}]: duplicate id '{spec.id}'")
            seen.add(spec.id)

    if not isinstance(doc.get("params"), dict):
        problems.append("params: must be a mapping")
    if not doc.get("summary"):
        problems.append("summary: missing")

    approved = doc.get("approved")
    if not isinstance(approved, dict):
        problems.append("approved: must be a mapping")
    else:
        for k in ("key_factor", "explanation", "guidance"):
            if not approved.get(k):
                problems.append(f"approved: missing '{k}'")
        problems.extend(_check_clause("approved", approved.get("clause")))

    checks = doc.get("checks")
    if not isinstance(checks, dict) or not checks:
        problems.append("checks: must be a non-empty mapping")
    else:
        for key, t in checks.items():
            if not isinstance(t, dict):
                problems.append(f"checks.{key}: must be a mapping")
                continue
            for k in CHECK_TEXT_KEYS:
                if k == "clause":
                    problems.extend(_check_clause(f"checks.{key}", t.get("clause")))
                elif not t.get(k):
                    problems.append(f"checks.{key}: missing '{k}'")
            if key not in informational and not t.get("counterfactual"):
                problems.append(f"checks.{key}: missing 'counterfactual'")

    res = doc.get("resource")
    if res is not None and not (isinstance(res, dict) and res.get("label") and res.get("url")):
        problems.append("resource: needs 'label' and 'url'")
    return problems


def _build(scenario_id: str, doc: Dict[str, Any], rules: RuleFunction) -> ScenarioDefinition:
    meta = doc["meta"]
    if meta["id"] != scenario_id:
        raise ValueError(f"{scenario_id}.yml: meta.id is {meta['id']!r}")
    texts = {
        "summary": doc["summary"],
        "resource": doc.get("resource"),
        "approved": doc["approved"],
        "checks": doc["checks"],
    }
    return ScenarioDefinition(
        id=scenario_id,
        title=meta["title"],
        description=meta["description"],
        fields=tuple(_FIELD_ADAPTER.validate_python(f) for f in doc["fields"]),
        params=_freeze(doc["params"]),
        texts=_freeze(texts),
        rules=rules,
    )


# -------------------- REGISTRY --------------------

def catalog_ids() -> List[str]:
    """Scenario ids in display order. A missing or empty catalog is a ValueError."""
    if not CATALOG.exists():
        raise ValueError(f"scenario catalog not found: {CATALOG}")
    ids = _load_yaml(CATALOG).get("scenarios")
    if not isinstance(ids, list) or not ids:
        raise ValueError(f"{CATALOG.name}: 'scenarios' must be a non-empty list")
    return [str(x) for x in ids]


@lru_cache(maxsize=1)
def load_registry() -> Mapping[str, ScenarioDefinition]:
    """Loaded once per process; any defect in the rule tables fails the load."""
    out: Dict[str, ScenarioDefinition] = {}
    for sid in catalog_ids():
        rules = RULE_FUNCTIONS.get(sid)
        if rules is None:
            raise ValueError(f"catalog lists '{sid}' but no rule function is registered")
        doc = _load_yaml(SCENARIOS_DIR / f"{sid}.yml")
        problems = validate_scenario_doc(doc)
        if problems:
            raise ValueError(f"{sid}.yml: " + "; ".join(problems))
        out[sid] = _build(sid, doc, rules)
    logger.info("scenario registry loaded: %s", ", ".join(out))
    return MappingProxyType(out)


def get_scenario(scenario_id: str) -> ScenarioDefinition:
    try:
        return load_registry()[scenario_id]
    except KeyError:
        raise UnknownScenario(scenario_id) from None


def list_scenarios() -> List[Dict[str, str]]:
    return [
        ScenarioSummary(id=s.id, title=s.title, description=s.description).model_dump()
        for s in load_registry().values()
    ]


def get_fields(scenario_id: str) -> Tuple[Any, ...]:
    return get_scenario(scenario_id).fields


def get_evaluator(scenario_id: str) -> Callable[[Optional[Mapping[str, Any]]], DecisionRecord]:
    return get_scenario(scenario_id).evaluate
