"""Models produced by the proposal document helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LinkAction(str, Enum):
    """What the synchronizer did to the discussion link field."""

    REPLACED = "replaced"
    INSERTED = "inserted"
    UNCHANGED = "unchanged"
    NO_ANCHOR = "no_anchor"


@dataclass(slots=True)
class LinkUpdate:
    """Result of synchronizing the discussion link inside a proposal document."""

    content: str
    action: LinkAction

    @property
    def changed(self) -> bool:
        return self.action in {LinkAction.REPLACED, LinkAction.INSERTED}


@dataclass(slots=True)
class ProposalSummary:
    """Summary text placed in the discussion body."""

    text: str
    generated: bool = False
