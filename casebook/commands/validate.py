"""`casebook validate`: load a case and report every configuration error."""
from __future__ import annotations

from pathlib import Path

from investigation.config import CASE_DIR, DEFAULT_CASE_ID
from investigation.content.loader import CaseValidationError, list_cases, load_case, load_case_from_path


def register(subparsers) -> None:
    p = subparsers.add_parser("validate", help="Validate a case's YAML documents")
    p.add_argument("case", nargs="?", default=None, help=f"Case id under the case dir (default: {DEFAULT_CASE_ID})")
    p.add_argument("--case-dir", default=None, help=f"Case root directory (default: {CASE_DIR})")
    p.add_argument("--path", default=None, help="Validate this case directory directly")
    p.add_argument("--all", action="store_true", help="Validate every case under the case dir")
    p.set_defaults(func=run)


def _validate_one(label: str, loader) -> bool:
    try:
        bundle = loader()
    except CaseValidationError as e:
        print(f"FAIL {label}: {len(e.errors)} error(s)")
        for err in e.errors:
            print(f"  - {err}")
        return False
    print(
        f"OK   {label}: {len(bundle.clues.clues)} clues, {len(bundle.dialogs)} characters, "
        f"{len(bundle.accusation.confrontations)} suspects (culprit: {bundle.accusation.settings.culprit})"
    )
    return True


def run(args) -> int:
    if args.path:
        path = Path(args.path)
        ok = _validate_one(str(path), lambda: load_case_from_path(path))
        return 0 if ok else 1

    if args.all:
        cases = list_cases(args.case_dir)
        if not cases:
            print(f"No cases found in {args.case_dir or CASE_DIR}")
            return 1
        results = [_validate_one(cid, lambda cid=cid: load_case(cid, case_dir=args.case_dir)) for cid in cases]
        return 0 if all(results) else 1

    case_id = args.case or DEFAULT_CASE_ID
    ok = _validate_one(case_id, lambda: load_case(case_id, case_dir=args.case_dir))
    return 0 if ok else 1
