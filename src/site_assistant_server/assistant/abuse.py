"""
Honeypot abuse filter.

Forms carry a hidden ``website`` field that humans never see. Anything typed
into it marks the submission as automated; callers answer such requests with
a cheap fake success and do no real work.
"""

from typing import Any

BOT_ACKNOWLEDGEMENT = "Thanks for your question! We'll be in touch soon."


def is_bot(honeypot: Any) -> bool:
    if honeypot is None:
        return False
    if isinstance(honeypot, str):
        return bool(honeypot.strip())
    # Browsers only ever send the field as a string
    return True
