#!/usr/bin/env python3
"""
Run the extract → classify → save pipeline for one uploaded object.

Useful after prompt changes or a failed run: the invoice record is
overwritten with the new result.

Usage:
    python scripts/reprocess_invoice.py <bucket> <object_key>

Example:
    python scripts/reprocess_invoice.py finance-insight-uploads 6f1c2a9e-3b7d-4d0e-9a51-2c8f0e7d4b11.jpg
"""
import asyncio
import os
import sys

# Add parent directory to path so we can import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from packages.common.config import get_settings
from packages.common.logging_config import configure_logging
from services.worker.tasks.process_invoice import run_invoice_pipeline


async def main():
    if len(sys.argv) < 3:
        print("Usage: python scripts/reprocess_invoice.py <bucket> <object_key>")
        sys.exit(1)

    bucket_name, object_key = sys.argv[1], sys.argv[2]
    settings = get_settings()
    configure_logging(settings.log_level)

    print(f"Reprocessing s3://{bucket_name}/{object_key}...")
    result = await run_invoice_pipeline(bucket_name, object_key, settings=settings)

    print("\nResult:")
    if result.get("status") == "Error":
        print(f"  Error: {result.get('errorMessage')}")
        sys.exit(1)

    extracted = result.get("extractedData", {})
    summary = extracted.get("summary", {})
    print(f"  File ID: {result['sourceObject'].get('fileId')}")
    print(f"  Vendor: {summary.get('VENDOR_NAME')}")
    print(f"  Total: {summary.get('TOTAL')}")
    print(f"  Vendor category: {result.get('vendorCategory')}")
    for item in extracted.get("lineItems", []):
        print(f"    {item.get('ITEM', ''):<40} {item.get('PRICE', ''):>10}  {item.get('CATEGORY')}")


if __name__ == "__main__":
    asyncio.run(main())
