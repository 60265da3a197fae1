"""
Invoice numbers: INV-<last 6 digits of epoch millis>-<3 random digits>.
Uniqueness is enforced by the store; the ledger regenerates on collision.
"""

import random
import re
import time

INVOICE_PATTERN = re.compile(r"^INV-\d{6}-\d{3}$")


def generate_invoice_number(now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"INV-{now_ms % 1_000_000:06d}-{random.randrange(1000):03d}"
