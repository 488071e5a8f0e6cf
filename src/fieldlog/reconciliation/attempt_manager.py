"""Enrichment attempt tracking for FieldLog.

Each species has two independent enrichment channels, taxonomy and photos.
This module records every state transition of every channel so that the
progress of an enrichment run can be inspected and summarized.

State machine per channel:
    NOT_STARTED -> AWAITING_TAXONOMY -> TAXONOMY_OK | TAXONOMY_FAILED
    NOT_STARTED -> AWAITING_PHOTOS   -> PHOTOS_OK   | PHOTOS_FAILED
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple, Union

TAXONOMY = "taxonomy"
PHOTOS = "photos"
CHANNELS = (TAXONOMY, PHOTOS)


class EnrichmentState(Enum):
    """The state of one enrichment channel for one species."""
    def __init__(self, channel: str, groups: Tuple[str, ...]):
        self.channel = channel
        self.groups: Set[str] = set(groups)

    NOT_STARTED = ("any", ("non-terminal",))

    AWAITING_TAXONOMY = (TAXONOMY, ("non-terminal", "in-flight"))
    TAXONOMY_OK = (TAXONOMY, ("terminal", "success"))
    TAXONOMY_FAILED = (TAXONOMY, ("terminal", "failure"))

    AWAITING_PHOTOS = (PHOTOS, ("non-terminal", "in-flight"))
    PHOTOS_OK = (PHOTOS, ("terminal", "success"))
    PHOTOS_FAILED = (PHOTOS, ("terminal", "failure"))

    @property
    def is_terminal(self) -> bool:
        return "terminal" in self.groups

    @property
    def is_successful(self) -> bool:
        return "success" in self.groups

    @property
    def in_flight(self) -> bool:
        return "in-flight" in self.groups


_ALLOWED_TRANSITIONS = {
    EnrichmentState.NOT_STARTED: {
        EnrichmentState.AWAITING_TAXONOMY,
        EnrichmentState.AWAITING_PHOTOS,
    },
    EnrichmentState.AWAITING_TAXONOMY: {
        EnrichmentState.TAXONOMY_OK,
        EnrichmentState.TAXONOMY_FAILED,
    },
    EnrichmentState.AWAITING_PHOTOS: {
        EnrichmentState.PHOTOS_OK,
        EnrichmentState.PHOTOS_FAILED,
    },
}


@dataclass(frozen=True)
class EnrichmentAttempt:
    """One recorded state of an enrichment channel."""

    species_name: str
    channel: str
    state: EnrichmentState
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    metadata: Dict[str, Union[str, int, float, bool]] = field(default_factory=dict)


class EnrichmentAttemptManager:
    """Tracks enrichment attempts per species and channel.

    This class is responsible for:
    - Validating state transitions
    - Keeping the chronological chain of states per (species, channel)
    - Reporting the current state and summary statistics
    """

    def __init__(self):
        self._chains: Dict[Tuple[str, str], List[EnrichmentAttempt]] = {}
        self.logger = logging.getLogger(__name__)

    def get_state(self, species_name: str, channel: str) -> EnrichmentState:
        """Get the current state of a channel, NOT_STARTED if never touched."""
        chain = self._chains.get((species_name, channel))
        if not chain:
            return EnrichmentState.NOT_STARTED
        return chain[-1].state

    def get_chain(self, species_name: str, channel: str) -> List[EnrichmentAttempt]:
        """Get the recorded states of a channel in chronological order."""
        return list(self._chains.get((species_name, channel), []))

    def record(
        self,
        species_name: str,
        state: EnrichmentState,
        metadata: Optional[Dict[str, Union[str, int, float, bool]]] = None,
    ) -> EnrichmentAttempt:
        """Record a transition to a new state.

        A species that is requested again (after an undo and a new entry
        with the same name, or after being absent from a batched response)
        starts a fresh chain.

        Raises:
            ValueError: If the transition is not part of the state machine
        """
        channel = state.channel
        current = self.get_state(species_name, channel)
        if state.in_flight and (current.is_terminal or current is state):
            self._chains.pop((species_name, channel), None)
            current = EnrichmentState.NOT_STARTED
        if state not in _ALLOWED_TRANSITIONS.get(current, set()):
            raise ValueError(
                f"Invalid {channel} transition for {species_name}: {current.name} -> {state.name}"
            )

        attempt = EnrichmentAttempt(
            species_name=species_name,
            channel=channel,
            state=state,
            metadata=dict(metadata or {}),
        )
        self._chains.setdefault((species_name, channel), []).append(attempt)
        self.logger.debug(f"{species_name} [{channel}]: {current.name} -> {state.name}")
        return attempt

    def get_pending(self, channel: str = TAXONOMY) -> List[str]:
        """Species whose channel has started but not finished."""
        return [
            name for (name, chan), chain in self._chains.items()
            if chan == channel and chain and chain[-1].state.in_flight
        ]

    def get_statistics(self) -> Dict[str, int]:
        """Count species per current state."""
        counts = {state.name.lower(): 0 for state in EnrichmentState if state.channel != "any"}
        for chain in self._chains.values():
            if chain:
                counts[chain[-1].state.name.lower()] += 1
        return {
            "tracked_channels": len(self._chains),
            **counts,
        }
