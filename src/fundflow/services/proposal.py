#!/usr/bin/env python3
"""
AI Proposal Flow

State machine for AI-assisted transaction entry:

    idle -> drafting -> processing -> proposed -> committed
                            |             |
                            +-> drafting  +-> processing (re-run)
    any live state -> discarded

Only one proposal is live. Each processing run takes a generation number;
a result delivered for an older generation (after a discard, a re-run or a
fund switch) is dropped instead of applied.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Iterable

from ..ai.models import TransactionDraft, ValidationResult
from ..ai.parser import AIConfigurationError, AIServiceError
from ..ai.validator import ProposalParseError, TransactionValidationError
from ..core.datastore import StoreError
from ..core.models import Transaction
from .lifecycle import TransactionLifecycle

logger = logging.getLogger(__name__)

# Failures of the natural-language path that send the user back to the prompt
PROPOSAL_ERRORS = (
    AIConfigurationError,
    AIServiceError,
    ProposalParseError,
    TransactionValidationError,
    StoreError,
)


class ProposalState(Enum):
    IDLE = "idle"
    DRAFTING = "drafting"
    PROCESSING = "processing"
    PROPOSED = "proposed"
    COMMITTED = "committed"
    DISCARDED = "discarded"


TRANSITIONS: dict[ProposalState, set[ProposalState]] = {
    ProposalState.IDLE: {ProposalState.DRAFTING},
    ProposalState.DRAFTING: {ProposalState.PROCESSING, ProposalState.DISCARDED},
    ProposalState.PROCESSING: {ProposalState.PROPOSED, ProposalState.DRAFTING, ProposalState.DISCARDED},
    ProposalState.PROPOSED: {ProposalState.COMMITTED, ProposalState.PROCESSING, ProposalState.DISCARDED},
    ProposalState.COMMITTED: {ProposalState.IDLE, ProposalState.DRAFTING},
    ProposalState.DISCARDED: {ProposalState.IDLE, ProposalState.DRAFTING},
}


class InvalidTransitionError(Exception):
    """Raised on a proposal state change the flow does not allow"""

    def __init__(self, current: ProposalState, target: ProposalState):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move proposal from {current.value} to {target.value}")


class ProposalFlow:
    """One AI-assisted transaction entry, from prompt to commit."""

    def __init__(self):
        self.state = ProposalState.IDLE
        self.generation = 0
        self.prompt = ""
        self.result: ValidationResult | None = None
        self.error: Exception | None = None

    @property
    def draft(self) -> TransactionDraft | None:
        return self.result.draft if self.result is not None else None

    def _move(self, target: ProposalState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state, target)
        logger.debug("Proposal %s -> %s (generation %d)", self.state.value, target.value, self.generation)
        self.state = target

    def start_drafting(self, prompt: str = "") -> None:
        self._move(ProposalState.DRAFTING)
        self.prompt = prompt
        self.result = None
        self.error = None

    def update_prompt(self, prompt: str) -> None:
        if self.state != ProposalState.DRAFTING:
            raise InvalidTransitionError(self.state, ProposalState.DRAFTING)
        self.prompt = prompt

    def begin_processing(self) -> int:
        """
        Enter processing and return the generation token for this run.

        A proposal already on screen is discarded.
        """
        self._move(ProposalState.PROCESSING)
        self.generation += 1
        self.result = None
        self.error = None
        return self.generation

    def is_current(self, token: int) -> bool:
        return token == self.generation and self.state == ProposalState.PROCESSING

    def deliver(self, token: int, result: ValidationResult) -> bool:
        """Apply a finished result. False (and ignored) if the run is stale."""
        if not self.is_current(token):
            logger.info("Ignoring stale proposal result (generation %d, current %d)", token, self.generation)
            return False
        self._move(ProposalState.PROPOSED)
        self.result = result
        return True

    def fail(self, token: int, error: Exception) -> bool:
        """Return to drafting with the error. False if the run is stale."""
        if not self.is_current(token):
            logger.info("Ignoring stale proposal failure (generation %d): %s", token, error)
            return False
        self._move(ProposalState.DRAFTING)
        self.error = error
        return True

    def edit(self, draft: TransactionDraft) -> None:
        """
        Replace the proposed draft with the user's edited version.

        The edit is not trusted: commit validates it again before saving.
        """
        if self.state != ProposalState.PROPOSED or self.result is None:
            raise InvalidTransitionError(self.state, ProposalState.PROPOSED)
        self.result = ValidationResult(draft=draft, warnings=self.result.warnings)

    def discard(self) -> None:
        """Drop the live proposal; any run still in flight becomes stale."""
        if ProposalState.DISCARDED in TRANSITIONS[self.state]:
            self._move(ProposalState.DISCARDED)
        self.generation += 1
        self.result = None

    def reset(self) -> None:
        if self.state not in (ProposalState.IDLE, ProposalState.COMMITTED, ProposalState.DISCARDED):
            self.discard()
        if self.state != ProposalState.IDLE:
            self._move(ProposalState.IDLE)
        self.prompt = ""
        self.error = None

    async def run(self, propose: Callable[[str], Awaitable[ValidationResult]]) -> bool:
        """
        Process the current prompt with propose and apply the outcome.

        Exceptions from propose move the flow back to drafting with the
        error recorded. Returns True when a proposal was applied.
        """
        token = self.begin_processing()
        try:
            result = await propose(self.prompt)
        except PROPOSAL_ERRORS as e:
            logger.warning("Proposal generation failed: %s", e)
            self.fail(token, e)
            return False
        return self.deliver(token, result)

    async def commit(
        self,
        lifecycle: TransactionLifecycle,
        fund_id: str,
        member_ids: Iterable[str] = (),
        created_by: str | None = None,
    ) -> Transaction | None:
        """
        Persist the proposed draft.

        The draft is validated against the fund members at save time, so an
        edit that unbalances the splits or names a non-member is refused.
        On a rejection or a store failure the flow stays in proposed so the
        user can fix the draft or retry.
        """
        if self.state != ProposalState.PROPOSED or self.draft is None:
            raise InvalidTransitionError(self.state, ProposalState.COMMITTED)

        transaction = await lifecycle.create_transaction(
            self.draft.to_input(fund_id),
            member_ids=member_ids,
            created_by=created_by,
        )
        if transaction is None:
            return None
        self._move(ProposalState.COMMITTED)
        return transaction
