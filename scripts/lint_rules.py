#!/usr/bin/env python3
import sys
import argparse
from pathlib import Path
import yaml

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.services.rules_engine import RULE_FUNCTIONS  # noqa: E402
from app.services.scenario_registry import SCENARIOS_DIR, CATALOG, validate_scenario_doc  # noqa: E402


def load_yaml(p: Path):
    try:
        return yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as e:
        print(f"[ERR] invalid YAML: {p}: {e}")
        return None


def _is_number(x):
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def check_catalog() -> list:
    data = load_yaml(CATALOG)
    if not isinstance(data, dict) or not isinstance(data.get("scenarios"), list):
        print(f"[ERR] {CATALOG}: must contain 'scenarios: [...]'")
        return []
    ids = [str(x) for x in data["scenarios"]]
    if len(set(ids)) != len(ids):
        print(f"[ERR] {CATALOG}: duplicate scenario ids")
    return ids


def check_scenario(sid: str) -> bool:
    p = SCENARIOS_DIR / f"{sid}.yml"
    if not p.exists():
        print(f"[ERR] {p}: missing file for catalog entry '{sid}'")
        return False
    data = load_yaml(p)
    if data is None:
        return False

    ok = True
    for problem in validate_scenario_doc(data):
        print(f"[ERR] {p}: {problem}")
        ok = False

    if sid not in RULE_FUNCTIONS:
        print(f"[ERR] {p}: no rule function registered for '{sid}'")
        ok = False

    meta_id = (data.get("meta") or {}).get("id") if isinstance(data, dict) else None
    if meta_id and meta_id != sid:
        print(f"[ERR] {p}: meta.id={meta_id} differs from file name")
        ok = False

    # thresholds are plain numbers (lists allowed for set membership)
    params = data.get("params") if isinstance(data, dict) else None
    if isinstance(params, dict):
        for k, v in params.items():
            if not (_is_number(v) or isinstance(v, list)):
                print(f"[ERR] {p}: params.{k} must be a number or a list (got {type(v).__name__})")
                ok = False
    return ok


def main() -> int:
    ap = argparse.ArgumentParser(description="Lint rules/scenarios/*.yml")
    ap.add_argument("--scenario", help="Limit the lint to one scenario id")
    args = ap.parse_args()

    catalog = check_catalog()
    ids = catalog
    if args.scenario:
        ids = [s for s in ids if s == args.scenario]
        if not ids:
            print(f"[ERR] scenario '{args.scenario}' is not in the catalog")
            return 1

    # rule files not listed in the catalog are never loaded
    listed = set(catalog)
    for p in sorted(SCENARIOS_DIR.glob("*.yml")):
        if p.name != CATALOG.name and p.stem not in listed:
            print(f"[WARN] {p}: not listed in {CATALOG.name}")

    ok = bool(ids)
    for sid in ids:
        ok = check_scenario(sid) and ok
    print("OK" if ok else "KO")
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
