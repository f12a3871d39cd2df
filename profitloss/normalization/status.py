"""Free-text status classification for returns and uploaded rows."""

import re

from profitloss.models.enums import ProfitStatus

STATUS_TOKENS: dict[str, ProfitStatus] = {
    "delivered": ProfitStatus.DELIVERED,
    "rto": ProfitStatus.RTO,
    "return to origin": ProfitStatus.RTO,
    "rpu": ProfitStatus.RPU,
    "return pick up": ProfitStatus.RPU,
    "return pickup": ProfitStatus.RPU,
}


def classify_status(text: object) -> ProfitStatus | None:
    """Match a status string against the known tokens.

    Returns None for blank or unrecognised text; the caller decides the
    fallback and reports it.
    """
    if text is None:
        return None
    if isinstance(text, ProfitStatus):
        return text
    key = re.sub(r"[\s\-_]+", " ", str(text)).strip().lower()
    return STATUS_TOKENS.get(key)
