"""CLI for inspecting and maintaining the learner database.

Usage:
    python -m learner.cli status
    python -m learner.cli stats <hash>
    python -m learner.cli suggest <hash> [--side white|black]
    python -m learner.cli inconsistencies [--threshold T]
    python -m learner.cli openings [--depth N] [--limit N]
    python -m learner.cli patterns
    python -m learner.cli export [--output FILE]
    python -m learner.cli import <file>
    python -m learner.cli reset

Backend and thresholds come from Settings (env vars / .env.learner).
Prints JSON to stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from learner.config import Settings
from learner.learner import Learner, document_summary


def _run(args: argparse.Namespace, learner: Learner, settings: Settings) -> tuple[object, int]:
    """Execute one command. Returns (json-able result, exit code)."""
    if args.command == "status":
        return document_summary(learner), 0

    if args.command == "stats":
        record = learner.position_stats(args.hash)
        if record is None:
            return {"error": f"unknown position {args.hash}"}, 1
        return record.to_dict(), 0

    if args.command == "suggest":
        return [asdict(s) for s in learner.suggest_moves(args.hash, args.side)], 0

    if args.command == "inconsistencies":
        threshold = args.threshold if args.threshold is not None else settings.inconsistency_threshold
        return [asdict(i) for i in learner.find_inconsistencies(threshold)], 0

    if args.command == "openings":
        depth = args.depth if args.depth is not None else settings.opening_depth
        limit = args.limit if args.limit is not None else settings.opening_limit
        try:
            lines = learner.opening_tree(depth, limit)
        except ValueError as e:
            return {"error": str(e)}, 1
        return [asdict(line) for line in lines], 0

    if args.command == "patterns":
        return [asdict(s) for s in learner.pattern_summary()], 0

    if args.command == "export":
        text = learner.export()
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(text)
            return {"exported": args.output}, 0
        return json.loads(text), 0

    if args.command == "import":
        with open(args.file, encoding="utf-8") as f:
            text = f.read()
        ok = learner.import_document(text)
        return {"imported": ok, **document_summary(learner)}, 0 if ok else 1

    if args.command == "reset":
        ok = learner.reset()
        return {"reset": True, "saved": ok}, 0 if ok else 1

    raise ValueError(f"Unknown command: {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rchess learner database tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Document counts and metadata")

    stats = sub.add_parser("stats", help="Statistics for one position")
    stats.add_argument("hash", help="Canonical position key")

    suggest = sub.add_parser("suggest", help="Ranked move suggestions for a position")
    suggest.add_argument("hash", help="Canonical position key")
    suggest.add_argument("--side", default="white", choices=["white", "black"])

    inc = sub.add_parser("inconsistencies", help="Positions with surprising results")
    inc.add_argument("--threshold", type=float, default=None)

    openings = sub.add_parser("openings", help="Most common opening lines")
    openings.add_argument("--depth", type=int, default=None)
    openings.add_argument("--limit", type=int, default=None)

    sub.add_parser("patterns", help="Outcome totals per pattern tag")

    export = sub.add_parser("export", help="Dump the full document")
    export.add_argument("--output", metavar="FILE", help="Write to FILE instead of stdout")

    imp = sub.add_parser("import", help="Replace the database with a document")
    imp.add_argument("file", help="JSON document to import")

    sub.add_parser("reset", help="Clear all positions and games")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    logging.basicConfig(level=settings.log_level)

    learner = Learner.from_settings(settings)
    result, code = _run(args, learner, settings)
    json.dump(result, sys.stdout, indent=2)
    print()
    return code


if __name__ == "__main__":
    sys.exit(main())
