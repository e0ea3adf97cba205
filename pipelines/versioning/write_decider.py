"""
Automated Write Classification.

Responsibilities:
- Decide whether a fresh automated resolution may replace the stored row.
- Decide whether that replacement resets human verification.

Non-Responsibilities:
- No entity resolution.
- No persistence.

Invariant:
A human decision is never overwritten by an automated run unless the caller
explicitly asked for re-resolution.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from artisanmatch.models import Resolution


class WriteAction(str, Enum):
    INSERT = "insert"
    REPLACE = "replace"
    RE_RESOLVE = "re_resolve"
    SKIP_HUMAN = "skip_human"


@dataclass(frozen=True)
class WriteDecision:
    action: WriteAction
    reason: str

    @property
    def should_write(self) -> bool:
        return self.action is not WriteAction.SKIP_HUMAN

    @property
    def resets_verification(self) -> bool:
        return self.action is WriteAction.RE_RESOLVE


def decide_automated_write(existing: Optional[Resolution], re_resolve: bool = False) -> WriteDecision:
    if existing is None:
        return WriteDecision(WriteAction.INSERT, "no prior resolution")
    if not existing.human_touched:
        return WriteDecision(WriteAction.REPLACE, "prior resolution was automated and unverified")
    if re_resolve:
        return WriteDecision(
            WriteAction.RE_RESOLVE,
            f"explicit re-resolution over human state {existing.state.value}",
        )
    return WriteDecision(
        WriteAction.SKIP_HUMAN,
        f"human state {existing.state.value} is protected from automated writes",
    )
