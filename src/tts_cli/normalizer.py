"""Expand well-known placeholder tokens before the text is spoken."""

from __future__ import annotations

import platform
import re
from datetime import datetime, time

_TOKEN_RE = re.compile(r"\{(NOW|DATE|TIME|COMPUTERNAME)\}", re.IGNORECASE)

# Locale defaults used when no explicit format is given
_DEFAULT_FORMATS = {"NOW": "%c", "DATE": "%x", "TIME": "%X"}


def normalize(
    text: str,
    fmt: str = "",
    *,
    now: datetime | None = None,
    hostname: str | None = None,
) -> str:
    """Replace ``{NOW}``, ``{DATE}``, ``{TIME}`` and ``{COMPUTERNAME}`` in *text*.

    Tokens match case-insensitively. *fmt* is a ``strftime`` pattern applied
    to the date/time tokens; an empty pattern falls back to the locale's
    default representation. The text is scanned once, so replacement values
    are never expanded again.

    Args:
        text: Text to speak.
        fmt: Date/time pattern, or "" for the locale default.
        now: Instant to use instead of the current time.
        hostname: Host name to use instead of the local machine name.
    """
    moment = now or datetime.now()
    values = {
        "NOW": moment.strftime(fmt or _DEFAULT_FORMATS["NOW"]),
        "DATE": datetime.combine(moment.date(), time()).strftime(
            fmt or _DEFAULT_FORMATS["DATE"]
        ),
        "TIME": moment.time().strftime(fmt or _DEFAULT_FORMATS["TIME"]),
        "COMPUTERNAME": hostname if hostname is not None else platform.node(),
    }
    return _TOKEN_RE.sub(lambda m: values[m.group(1).upper()], text)
