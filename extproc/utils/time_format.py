"""
Human readable durations for diagnostics.
"""


def format_millis(millis: int) -> str:
    """Render a millisecond count as HH:MM:SS.mmm (negative values keep a leading '-')."""
    ms = int(millis)
    sign = "-" if ms < 0 else ""
    ms = abs(ms)
    h = ms // 3_600_000
    m = (ms % 3_600_000) // 60_000
    s = (ms % 60_000) // 1000
    return f"{sign}{h:02d}:{m:02d}:{s:02d}.{ms % 1000:03d}"
