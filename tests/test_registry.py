import pytest

from app.services import scenario_registry as reg
from app.services.errors import UnknownScenario
from app.services.rules_engine import RULE_FUNCTIONS, coerce_inputs

SAMPLES = {
    "business_grant": {"revenue": "5000000", "years": "3", "employees": "5", "sector": "Retail"},
    "housing_loan": {"creditScore": "750", "income": "1200000", "debt": "15000"},
    "student_loan": {"admission": "Yes", "fees": "500000", "parentIncome": "600000"},
    "scholarship": {"percentage": "85", "income": "250000"},
}


def test_list_scenarios_in_catalog_order():
    items = reg.list_scenarios()
    assert [s["id"] for s in items] == ["business_grant", "housing_loan", "student_loan", "scholarship"]
    assert items[0]["title"] == "Small Business Resilience Grant"


def test_get_fields():
    fields = reg.get_fields("housing_loan")
    assert [f.id for f in fields] == ["creditScore", "income", "debt"]
    assert all(f.kind == "number" for f in fields)
    sector = reg.get_fields("business_grant")[-1]
    assert sector.kind == "enum"
    assert sector.options == ("Technology", "Retail", "Hospitality", "Manufacturing", "Other")


def test_unknown_ids():
    with pytest.raises(UnknownScenario):
        reg.get_fields("nope")
    with pytest.raises(UnknownScenario):
        reg.get_evaluator("nope")


def test_registry_is_read_only():
    registry = reg.load_registry()
    with pytest.raises(TypeError):
        registry["extra"] = None
    params = reg.get_scenario("business_grant").params
    assert params["max_revenue"] == 10000000
    assert params["priority_sectors"] == ("Retail", "Hospitality", "Manufacturing")
    with pytest.raises(TypeError):
        params["max_revenue"] = 1


def test_rule_tables_cover_rule_functions():
    # checks in YAML are listed in the same precedence order as the rule function
    for sid, raw in SAMPLES.items():
        scenario = reg.get_scenario(sid)
        checks = RULE_FUNCTIONS[sid](coerce_inputs(scenario.fields, raw), scenario.params)
        assert [c.key for c in checks] == list(scenario.texts["checks"])


def test_get_evaluator_returns_callable():
    decision = reg.get_evaluator("scholarship")(SAMPLES["scholarship"])
    assert decision.scenario_id == "scholarship"


def test_shipped_rule_documents_are_valid():
    for sid in reg.catalog_ids():
        doc = reg._load_yaml(reg.SCENARIOS_DIR / f"{sid}.yml")
        assert reg.validate_scenario_doc(doc) == [], sid


def test_validate_reports_problems():
    doc = {
        "meta": {"id": "x", "title": "X"},
        "fields": [{"id": "a", "kind": "slider", "label": "A"}],
        "params": {},
        "summary": "s",
        "approved": {"key_factor": "k", "explanation": "e", "guidance": "g", "clause": {"source": "s"}},
        "checks": {"a": {"label": "A", "detail": "d", "key_factor": "A", "explanation": "e",
                         "guidance": "g", "clause": {"source": "s", "text": "t"}}},
    }
    problems = reg.validate_scenario_doc(doc)
    assert "meta: missing 'description'" in problems
    assert "approved.clause: missing 'text'" in problems
    assert "checks.a: missing 'counterfactual'" in problems
    assert any(p.startswith("fields[0]:") for p in problems)
    assert reg.validate_scenario_doc({}) == ["document is empty or not a mapping"]


def test_missing_catalog_fails_the_load(monkeypatch, tmp_path):
    monkeypatch.setattr(reg, "CATALOG", tmp_path / "catalog.yml")
    reg.load_registry.cache_clear()
    try:
        with pytest.raises(ValueError, match="catalog not found"):
            reg.load_registry()
    finally:
        reg.load_registry.cache_clear()


def test_empty_catalog_fails_the_load(monkeypatch, tmp_path):
    catalog = tmp_path / "catalog.yml"
    catalog.write_text("scenarios: []\n", encoding="utf-8")
    monkeypatch.setattr(reg, "CATALOG", catalog)
    reg.load_registry.cache_clear()
    try:
        with pytest.raises(ValueError, match="non-empty list"):
            reg.load_registry()
    finally:
        reg.load_registry.cache_clear()
