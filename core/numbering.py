"""
Document number templates.

A format is free text with placeholders:

    {YYYY}  four-digit year          {YY}  last two digits of year
    {MM}    month, two digits        {DD}  day, two digits
    {PREFIX} the configured prefix   {#...#} counter, zero-padded to the
                                             number of '#' characters

"WO-{YYYY}-{####}" with counter 7 on 2024-03-05 renders "WO-2024-0007".
A counter wider than its padding is written in full, never truncated.
Unknown placeholders are left as written.

A format without a counter token renders the same string for every document
on the same day. That is an operator configuration hazard, not something the
renderer refuses.
"""

import re
from datetime import date

_PLACEHOLDER = re.compile(r"\{(YYYY|YY|MM|DD|PREFIX|#+)\}")
_COUNTER = re.compile(r"\{#+\}")


def render_document_number(
    format: str,
    next_number: int,
    on: date,
    prefix: str = "",
) -> str:
    """
    Render a document number from its template.

    Args:
        format: Template string
        next_number: Counter value to embed
        on: Date supplying the date placeholders
        prefix: Value for {PREFIX}

    Returns:
        The rendered number.
    """
    def substitute(match: re.Match) -> str:
        token = match.group(1)
        if token == "YYYY":
            return f"{on.year:04d}"
        if token == "YY":
            return f"{on.year % 100:02d}"
        if token == "MM":
            return f"{on.month:02d}"
        if token == "DD":
            return f"{on.day:02d}"
        if token == "PREFIX":
            return prefix
        return str(next_number).zfill(len(token))

    return _PLACEHOLDER.sub(substitute, format)


def has_counter(format: str) -> bool:
    """Whether the format contains a counter token, i.e. can produce distinct numbers."""
    return _COUNTER.search(format) is not None
