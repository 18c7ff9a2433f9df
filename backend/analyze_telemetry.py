"""
Batch scoring script for captured login telemetry.

Scores every login in a JSON file (one object or a list of objects) and
prints the text reports or JSON results, followed by a confidence summary.

Usage:
    python analyze_telemetry.py samples.json --policy score_or_confidence
"""
import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List

import numpy as np
from pydantic import ValidationError

# Add backend directory to path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from features import TelemetryFeatureExtractor
from policy import PolicyName, get_policy
from report import generate_report
from schemas import LoginTelemetry
from scoring import AnalysisResult, ScoringEngine
from thresholds import load_thresholds

logger = logging.getLogger(__name__)


def load_payloads(path: str) -> List[Dict[str, Any]]:
    """
    Load telemetry payloads from a JSON file.

    Args:
        path: JSON file holding one payload object or a list of them

    Returns:
        List of payload dicts
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, list) else [data]


def summarize_results(results: List[AnalysisResult]) -> Dict[str, Any]:
    """
    Summarize a batch of analyses.

    Args:
        results: Analysis results

    Returns:
        Dictionary with counts and confidence statistics
    """
    confidences = np.array([r.confidence for r in results], dtype=np.float64)

    return {
        "n_logins": len(results),
        "n_bots": sum(1 for r in results if r.is_bot),
        "confidence_stats": {
            "mean": float(np.mean(confidences)) if results else 0.0,
            "std": float(np.std(confidences)) if results else 0.0,
            "min": float(np.min(confidences)) if results else 0.0,
            "max": float(np.max(confidences)) if results else 0.0,
        },
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Score captured login telemetry as bot or human")
    parser.add_argument("path", help="JSON file with one telemetry object or a list of them")
    parser.add_argument(
        "--policy",
        choices=[p.value for p in PolicyName],
        default=None,
        help="Decision policy (default: BOT_DECISION_POLICY or confidence_threshold)"
    )
    parser.add_argument(
        "--thresholds",
        default=None,
        help="JSON file with threshold overrides"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print JSON results instead of text reports"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    thresholds = load_thresholds(args.thresholds)
    engine = ScoringEngine(
        extractor=TelemetryFeatureExtractor(),
        thresholds=thresholds,
        policy=get_policy(args.policy, thresholds),
    )

    payloads = load_payloads(args.path)
    logger.info(f"Scoring {len(payloads)} logins from {args.path}")

    results = []
    for index, payload in enumerate(payloads):
        try:
            request = LoginTelemetry.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Login #{index}: invalid payload ({e.error_count()} errors)")
            request = None

        result = engine.analyze(request)
        results.append(result)

        if args.json:
            print(json.dumps(result.to_dict(), ensure_ascii=False))
        else:
            print(generate_report(result, request))
            print()

    summary = summarize_results(results)
    logger.info(
        f"{summary['n_bots']}/{summary['n_logins']} flagged as bots, "
        f"mean confidence {summary['confidence_stats']['mean']:.1f}%"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
