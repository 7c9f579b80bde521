import re
import time


INTEGER_FIELDS = ("_id", "phone_type", "engine_type", "update_time")


def now_millis():
    return int(time.time() * 1000)


def clean_number(number):
    """Strip spaces and separators from a phone number, keeping a leading '+'.

    Returns None when nothing digit-like is left. The store itself keys on the
    string as given; this is only applied to bulk-loaded data.
    """
    if number is None:
        return None
    s = str(number).strip()
    if not s:
        return None
    plus = s.startswith("+")
    digits = re.sub(r"\D", "", s)
    if not digits:
        return None
    return f"+{digits}" if plus else digits


def coerce_field(name, value):
    """Convert a string from the command line or a CSV cell into the column's type."""
    if value is None:
        return None
    if name in INTEGER_FIELDS:
        s = str(value).strip()
        if s == "":
            return None
        # pandas and spreadsheets like to hand back "1.0"
        return int(float(s))
    return value


def parse_assignments(pairs):
    """Parse ["k=v", ...] into a dict with typed values."""
    values = {}
    for pair in pairs or ():
        if "=" not in pair:
            raise ValueError(f"expected key=value, got {pair!r}")
        key, value = pair.split("=", 1)
        key = key.strip()
        values[key] = coerce_field(key, value)
    return values
