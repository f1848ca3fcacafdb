#!/usr/bin/env python3
"""Extract citations from a saved model response and print them as JSON."""

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from citeparse.core.config import ExtractionConfig, load_extraction_config
from citeparse.core.safety import InputTooLarge
from citeparse.extraction import extract_all

logger = logging.getLogger("extract_citations")


def run_extraction(source: str, as_json: bool, config: ExtractionConfig) -> dict:
    """Read source ("-" for stdin), extract citations, return them as plain dicts."""
    if source == "-":
        raw = sys.stdin.read()
    else:
        raw = Path(source).read_text(encoding="utf-8")

    llm_output = json.loads(raw) if as_json else raw
    citations = extract_all(llm_output, config)
    logger.info("Extracted %d citation(s) from %s", len(citations), source)
    return {key: c.model_dump(exclude_none=True) for key, c in citations.items()}


# ── CLI ──────────────────────────────────────────────────────────────


def main():
    parser = argparse.ArgumentParser(description="Extract citations from model output")
    parser.add_argument("input", help="Path to a response file, or - for stdin")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Parse the input as JSON before extracting",
    )
    parser.add_argument("--config", default=None, help="Path to extraction config YAML")
    parser.add_argument("--verbose", action="store_true", help="Log debug detail")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    config = load_extraction_config(args.config) if args.config else ExtractionConfig()
    try:
        result = run_extraction(args.input, args.json, config)
    except InputTooLarge as e:
        logger.error("%s", e)
        sys.exit(1)

    json.dump(result, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
