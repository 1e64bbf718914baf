#!/usr/bin/env python
"""Render a temperature log PDF from a JSON dump of readings."""
from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from templog.config import get_settings
from templog.logging_config import configure_logging
from templog.models import TemperatureRecord
from templog.reports.pdf_report import generate_temperature_pdf
from templog.services.batch import BatchMode


def main() -> None:
    parser = argparse.ArgumentParser(description="Export temperature readings to PDF")
    parser.add_argument("records", type=Path, help="JSON file with a list of records")
    parser.add_argument("--out", type=Path, required=True)
    parser.add_argument("--mode", choices=[m.value for m in BatchMode], default=None)
    parser.add_argument("--no-images", action="store_true", help="Skip screenshot download")
    args = parser.parse_args()

    configure_logging(get_settings().log_level)

    raw = json.loads(args.records.read_text(encoding="utf-8"))
    records = [TemperatureRecord.model_validate(item) for item in raw]

    pdf_bytes = asyncio.run(
        generate_temperature_pdf(
            records,
            mode=BatchMode(args.mode) if args.mode else None,
            include_images=not args.no_images,
        )
    )
    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_bytes(pdf_bytes)
    print(f"Wrote {len(records)} records to {args.out}")


if __name__ == "__main__":
    main()
