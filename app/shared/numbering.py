"""Human-readable document numbers and money helpers"""

import math
import secrets
from datetime import datetime


def generate_document_number(prefix: str) -> str:
    """JOB-20250114-3FA2 style numbers; the random suffix avoids per-account sequences"""
    return f"{prefix}-{datetime.utcnow().strftime('%Y%m%d')}-{secrets.token_hex(2).upper()}"


def round_half_up(value: float) -> int:
    """Round to the nearest whole number with .5 going up (not banker's rounding)"""
    return int(math.floor(value + 0.5))


def round_money(value: float) -> float:
    """Round to cents, half up"""
    return math.floor(value * 100 + 0.5) / 100
