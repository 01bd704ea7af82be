"""
Display formatting in the id-ID locale: dates, compact counts, Rupiah.
"""
from decimal import Decimal, ROUND_HALF_UP
import re
import unicodedata
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

# Asia/Jakarta has no DST
JAKARTA_TZ = timezone(timedelta(hours=7), name="WIB")

ID_MONTHS_SHORT = [
    "Jan", "Feb", "Mar", "Apr", "Mei", "Jun",
    "Jul", "Agu", "Sep", "Okt", "Nov", "Des",
]

# (divisor, suffix) pairs, smallest first
_COMPACT_UNITS = [
    (1, ""),
    (10 ** 3, "rb"),
    (10 ** 6, "jt"),
    (10 ** 9, "M"),
    (10 ** 12, "T"),
]


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as stored by Postgres/Supabase."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_date_id(value: Union[str, datetime, None]) -> str:
    """Format a timestamp as e.g. "23 Jan 2026" in Jakarta time; "—" when unknown."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return "—"
    local = parsed.astimezone(JAKARTA_TZ)
    return f"{local.day:02d} {ID_MONTHS_SHORT[local.month - 1]} {local.year}"


def format_compact_id(n: Optional[Union[int, float]]) -> str:
    """
    Compact number notation as Intl id-ID renders it: at most two significant
    digits below 100 of a unit, whole numbers above. 981234 -> "981 rb",
    1200340 -> "1,2 jt", 12345 -> "12 rb", 999999 -> "1 jt".
    """
    value = abs(Decimal(str(n or 0)))
    negative = Decimal(str(n or 0)) < 0

    index = 0
    for i, (divisor, _) in enumerate(_COMPACT_UNITS):
        if value >= divisor:
            index = i

    while True:
        divisor, suffix = _COMPACT_UNITS[index]
        scaled = value / divisor
        step = Decimal("0.1") if scaled < 10 else Decimal("1")
        rounded = scaled.quantize(step, rounding=ROUND_HALF_UP)
        # 999.6 rb rounds to 1000 rb; carry into the next unit
        if rounded >= 1000 and index < len(_COMPACT_UNITS) - 1:
            index += 1
            continue
        break

    text = format(rounded.normalize(), "f").replace(".", ",")
    sign = "-" if negative and rounded else ""
    return f"{sign}{text} {suffix}" if suffix else f"{sign}{text}"


def format_idr(amount: Union[int, float]) -> str:
    """Rupiah with thousands dots and comma decimals: "Rp 10.000,00"."""
    whole, frac = f"{float(amount):,.2f}".split(".")
    return f"Rp {whole.replace(',', '.')},{frac}"


def format_rating(rating: Optional[Union[int, float]]) -> str:
    """One decimal place, or "—" when the comic has not been rated."""
    if rating is None:
        return "—"
    return f"{float(rating):.1f}"


def slugify(text: str, fallback: str = "komik") -> str:
    """URL slug from a title: "Solo Leveling!" -> "solo-leveling"."""
    normalized = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or fallback
