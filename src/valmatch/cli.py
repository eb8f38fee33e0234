from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from .engine import MatchingEngine
from .errors import ConfigurationError
from .models import RuleSet

logger = logging.getLogger(__name__)


def _load_json(path: Path) -> List[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        # Maybe wrapped object with key like 'items'
        for key in ("items", "data", "records"):
            if key in data and isinstance(data[key], list):
                return list(data[key])
        raise ValueError("JSON must be an array or object with 'items'/'data'/'records' list")
    if not isinstance(data, list):
        raise ValueError("JSON must be an array of objects")
    return list(data)


def _load_csv(path: Path) -> List[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        # Empty CSV cells are absent values
        return [{k: (v if v != "" else None) for k, v in row.items()} for row in reader]


def _load_records(path: str) -> List[Dict[str, Any]]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(p))
    suffix = p.suffix.lower()
    if suffix == ".json":
        return _load_json(p)
    if suffix in (".csv", ".txt"):
        return _load_csv(p)
    raise ValueError("Unsupported records format. Use .csv, .txt or .json")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Match records against configured property values")
    parser.add_argument("records", help="Records file (.csv, .txt or .json)")
    parser.add_argument("rules", help="Rules YAML file")
    parser.add_argument("--id-field", default="id")
    parser.add_argument("--output", default="-", help="Output file path or '-' for stdout")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    records = _load_records(args.records)
    ruleset = RuleSet.from_yaml_file(args.rules)
    logger.info("Loaded %d records and %d rules", len(records), len(ruleset.rules))

    engine = MatchingEngine()
    try:
        result = engine.match(records, ruleset, id_field=args.id_field)
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2

    output = json.dumps(result.model_dump(), indent=2)
    if args.output == "-":
        print(output)
    else:
        Path(args.output).write_text(output, encoding="utf-8")
    return 0


if __name__ == "__main__":
    sys.exit(main())
