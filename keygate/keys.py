"""
keys.py - Key identifier generation and lifetime rules
======================================================
Every key handed out by /gerar looks like:

    19a3f2c41d8-9f3b2a71-0c4de5f6
    └─ ms time ─┘ └─ 64 random bits ─┘

  - The first group is the creation time in milliseconds (hex), so keys
    sort roughly by issue time and two keys minted in different
    milliseconds can never collide.
  - The two trailing groups come from `secrets`, 32 bits each.
  - Only [0-9a-f-] is used: safe in JSON bodies, URLs and Roblox strings
    without escaping.

LIFETIME:
  An unused key is good for KEY_EXPIRY_HOURS after it was created. After
  that /validar answers "expirada" and the hourly sweep deletes it.
  Used keys are kept forever for auditing.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

# ─────────────────────────────────────────────────────────────────
# LIFETIME DEFAULTS
# ─────────────────────────────────────────────────────────────────
KEY_EXPIRY_HOURS = 24
SWEEP_INTERVAL_SECONDS = 60 * 60
RANDOM_GROUP_BYTES = 4
RANDOM_GROUPS = 2


def expiry_window(hours: float = KEY_EXPIRY_HOURS) -> timedelta:
    return timedelta(hours=hours)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_key_id(now: Optional[datetime] = None) -> str:
    """Return a new key id: hex millisecond timestamp + 64 random bits."""
    now = now or utcnow()
    millis = int(now.timestamp() * 1000)
    groups = [secrets.token_hex(RANDOM_GROUP_BYTES) for _ in range(RANDOM_GROUPS)]
    return "-".join([format(millis, "x"), *groups])
