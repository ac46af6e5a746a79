#!/usr/bin/env python3
"""
Check the guideline and legal-source links cited in the scenario rule tables.

Usage:
  python scripts/check_references.py [--scenario housing_loan] [--offline] [--strict]

Behaviour:
  - Reads every scenario listed in rules/scenarios/catalog.yml
  - Collects resource.url, approved.clause.url, checks[*].clause.url, checks[*].resource.url
  - Online: HEAD (GET fallback) each URL, a 4xx/5xx or network error is an error
  - Offline: shape check only (https + host); problems are warnings unless --strict
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.services.reference_client import ReferenceClient, iter_reference_urls  # noqa: E402
from app.services.scenario_registry import SCENARIOS_DIR, catalog_ids  # noqa: E402


def load_yaml(p: Path) -> Optional[Dict[str, Any]]:
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
        return data if isinstance(data, dict) else None
    except Exception as e:
        print(f"[ERR] invalid YAML: {p}: {e}")
        return None


def validate_file(client: ReferenceClient, p: Path, *, online: bool, strict: bool) -> bool:
    data = load_yaml(p)
    if data is None:
        return False

    ok = True
    for url in iter_reference_urls(data):
        if online:
            reachable, diag = client.check_url(url)
            if not reachable:
                print(f"[ERR] {p}: unreachable: {url} ({diag or 'unknown failure'})")
                ok = False
        else:
            ok_shape, diag = ReferenceClient.shape_check(url)
            if not ok_shape:
                if strict:
                    print(f"[ERR] {p}: offline: {diag}: {url}")
                    ok = False
                else:
                    print(f"[WARN] {p}: offline: {diag}: {url}")
    return ok


def run(strict: bool = False, offline: bool = False, scenario: Optional[str] = None) -> bool:
    try:
        ids: List[str] = catalog_ids()
    except ValueError as e:
        print(f"[ERR] {e}")
        return False
    if scenario is not None:
        if scenario not in ids:
            print(f"[ERR] scenario '{scenario}' is not in the catalog")
            return False
        ids = [scenario]

    client = ReferenceClient()
    if offline:
        print("[INFO] offline mode: shape check only.")

    ok = True
    for sid in ids:
        p = SCENARIOS_DIR / f"{sid}.yml"
        if not p.exists():
            print(f"[ERR] missing rule file: {p}")
            ok = False
            continue
        ok = validate_file(client, p, online=not offline, strict=strict) and ok
    return ok


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--scenario", help="Limit the check to one scenario id (e.g. housing_loan)")
    ap.add_argument("--offline", action="store_true", help="No network: shape check only.")
    ap.add_argument("--strict", action="store_true", help="Offline shape problems fail the run.")
    args = ap.parse_args()
    ok = run(strict=args.strict, offline=args.offline, scenario=args.scenario)
    print("OK" if ok else "KO")
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
