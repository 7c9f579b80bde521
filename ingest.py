"""Bulk-load phone locations from CSV.

Usage:
    python ingest.py path/to/file.csv [--dry-run]

Each valid row is written through the ``bynumber`` address, so an existing number
is updated in place and a new one is inserted. Rows without a usable number are
written to FAILED_ROWS_PATH for inspection.
"""
import os
import sys
import argparse
import logging

import pandas as pd

from provider import PhoneLocationProvider
from router import number_address
from utils import clean_number, coerce_field

logger = logging.getLogger(__name__)

COMMON_COLUMNS = {
    "number": ["number", "phone", "tel_number", "phone_number", "msisdn"],
    "location": ["location", "loc", "result_loc", "belong_area"],
    "phone_type": ["phone_type", "type"],
    "engine_type": ["engine_type", "engine"],
    "user_mark": ["user_mark", "mark", "name"],
    "update_time": ["update_time", "processed_at"],
}


def detect_mapping(columns):
    """Map each field to the first CSV column (case-insensitive) that looks like it."""
    lowered = [c.lower() for c in columns]
    mapping = {}
    for field, candidates in COMMON_COLUMNS.items():
        for c in candidates:
            if c in lowered:
                mapping[field] = columns[lowered.index(c)]
                break
    return mapping


def row_to_values(row, mapping):
    # row: pandas Series
    values = {}
    for field, column in mapping.items():
        if field == "number":
            continue
        cell = row.get(column)
        if cell is None or cell == "":
            continue
        values[field] = coerce_field(field, cell)
    return values


def ingest_dataframe(df, provider=None, dry_run=False):
    """Upsert every row of ``df``; returns the number of valid rows.

    If provider is None, a PhoneLocationProvider on the configured database is used.
    """
    if provider is None:
        provider = PhoneLocationProvider()

    df = df.fillna("")
    mapping = detect_mapping(list(df.columns))
    logger.info("Detected mapping: %s", mapping)

    valid_rows = []
    failed_rows = []
    for _, row in df.iterrows():
        number = clean_number(row.get(mapping["number"])) if "number" in mapping else None
        if not number:
            failed_rows.append(row.to_dict())
            continue
        try:
            values = row_to_values(row, mapping)
        except ValueError:
            failed_rows.append(row.to_dict())
            continue
        values["number"] = number
        valid_rows.append(values)

    if dry_run:
        out_path = os.getenv("DRY_RUN_OUT", "dry_run_normalized.csv")
        pd.DataFrame(valid_rows).to_csv(out_path, index=False)
        logger.info("Dry-run: wrote %d normalized rows to %s", len(valid_rows), out_path)
    else:
        written = 0
        for values in valid_rows:
            written += provider.update(number_address(values["number"]), values)
        logger.info("Upserted %d of %d rows", written, len(valid_rows))

    if failed_rows:
        failed_path = os.getenv("FAILED_ROWS_PATH", "failed_rows.csv")
        pd.DataFrame(failed_rows).to_csv(failed_path, index=False)
        logger.warning("Wrote %d failed rows to %s", len(failed_rows), failed_path)

    return len(valid_rows)


def ingest_file(path, provider=None, dry_run=False):
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    count = ingest_dataframe(df, provider=provider, dry_run=dry_run)
    logger.info("Ingested %d rows from %s", count, path)
    return count


def main():
    parser = argparse.ArgumentParser(description="Ingest CSV into the phone location database")
    parser.add_argument("path")
    parser.add_argument("--dry-run", action="store_true", help="Normalize and write output without DB writes")
    args = parser.parse_args()

    if not os.path.exists(args.path):
        print(f"File not found: {args.path}")
        sys.exit(1)

    logging.basicConfig(level=os.getenv("PHONELOCATION_LOG_LEVEL", "INFO"))
    count = ingest_file(args.path, dry_run=args.dry_run)
    print(f"Processed {count} (valid) rows from {args.path}")


if __name__ == "__main__":
    main()
