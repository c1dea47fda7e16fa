"""
main.py
--------
Batch entry point for the Recurring Pattern & Subscription Engine.

Reads a transaction export, runs recurring pattern detection, and writes the
ranked candidate patterns to the outputs/ folder.

Usage (from the project root):
    python main.py --input path/to/transactions.csv

    # With optional arguments:
    python main.py --input txns.csv --patterns tracked_patterns.csv
    python main.py --input txns.csv --lookback 180
    python main.py --input txns.csv --min-confidence 0.75

Transactions CSV columns: transaction_id, transaction_date, amount,
description, and optionally merchant, currency, recurring_id, pending.
Patterns CSV columns: merchant_name, status (confirmed / detected / ...).
"""

import sys
import os
import argparse
import logging
import pandas as pd
from datetime import datetime

# Ensure project root is on path (for runs from any working directory)
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from core.models import PATTERN_STATUSES, RecurringPattern
from pipeline import SubscriptionEnginePipeline


# =============================================================================
# LOGGING SETUP
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("main")


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recurring Pattern Engine: detect recurring charges in transaction history."
    )
    parser.add_argument(
        "--input", type=str, required=True,
        help="Path to input transactions CSV."
    )
    parser.add_argument(
        "--patterns", type=str, default=None,
        help="Optional CSV of already tracked patterns (merchant_name, status). Their merchants are skipped."
    )
    parser.add_argument(
        "--lookback", type=int, default=None,
        help="Lookback window in days. Defaults to config value (365)."
    )
    parser.add_argument(
        "--min-confidence", type=float, default=None,
        help="Only write patterns at or above this confidence (0-1). Default: all detected patterns."
    )
    parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Output directory. Defaults to outputs/ in project root."
    )
    return parser.parse_args(argv)


# =============================================================================
# MAIN
# =============================================================================

def main(argv: list[str] | None = None):
    args = parse_args(argv)

    output_dir = args.output_dir or os.path.join(PROJECT_ROOT, "outputs")

    # --- Load transactions ---
    logger.info(f"Loading transactions from: {args.input}")
    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        sys.exit(1)

    transactions = pd.read_csv(args.input)
    logger.info(f"Loaded {len(transactions):,} transactions.")

    existing_patterns = _load_patterns(args.patterns) if args.patterns else []

    # --- Run pipeline ---
    pipeline = SubscriptionEnginePipeline(lookback_days=args.lookback)
    patterns = pipeline.detect(transactions, existing_patterns)

    # --- Apply confidence filter ---
    if args.min_confidence is not None:
        kept = [p for p in patterns if p.confidence >= args.min_confidence]
        logger.info(
            f"After filtering (>= {args.min_confidence:.2f}): {len(kept):,} patterns. "
            f"Filtered out: {len(patterns) - len(kept):,}."
        )
        patterns = kept

    # --- Output ---
    os.makedirs(output_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    detections_path = os.path.join(output_dir, f"detections_{timestamp}.csv")
    output = pipeline.patterns_to_frame(patterns)
    output.to_csv(detections_path, index=False)
    logger.info(f"Detections saved to: {detections_path}")

    _print_summary(output)
    return output


def _load_patterns(path: str) -> list[RecurringPattern]:
    """Reads tracked patterns. Only merchant_name and status matter for detection."""
    if not os.path.exists(path):
        logger.error(f"Patterns file not found: {path}")
        sys.exit(1)

    df = pd.read_csv(path)
    missing = [c for c in ("merchant_name", "status") if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    unknown = sorted(set(df["status"]) - set(PATTERN_STATUSES))
    if unknown:
        raise ValueError(f"Unknown pattern statuses: {unknown}. Available: {list(PATTERN_STATUSES)}")

    patterns = [
        RecurringPattern(
            pattern_id=str(row.get("pattern_id", i)),
            merchant_name=str(row["merchant_name"]),
            expected_amount=float(row.get("expected_amount", 0.0)),
            amount_variance=float(row.get("amount_variance", 0.0)),
            frequency=str(row.get("frequency", "monthly")),
            status=str(row["status"]),
        )
        for i, row in df.iterrows()
    ]
    logger.info(f"Loaded {len(patterns):,} tracked patterns from: {path}")
    return patterns


def _print_summary(df: pd.DataFrame):
    """Prints a clean summary table to the console."""
    if df.empty:
        print("\n  No recurring patterns to display.\n")
        return

    print("\n" + "=" * 80)
    print("  RECURRING PATTERN SUMMARY")
    print("=" * 80)

    print("\n  Patterns by Frequency:")
    print("  " + "-" * 60)
    for frequency, subset in df.groupby("suggested_frequency", sort=False):
        print(f"    {frequency:12s}  {len(subset):>5,} patterns  (avg confidence: {subset['confidence'].mean():.2f})")

    print("\n  Top Patterns:")
    print("  " + "-" * 60)
    for _, row in df.head(10).iterrows():
        print(
            f"    {row['merchant_name'][:30]:30s}  {row['suggested_frequency']:10s}  "
            f"{row['average_amount']:>10,.2f} {row['currency']}  ({row['confidence']:.2f})"
        )
    print("=" * 80 + "\n")


if __name__ == "__main__":
    main()
