#!/usr/bin/env python3
"""
Mvmender REPAIR PIPELINE - The Escalation Chain
-----------------------------------------------
The central coordinator for repairing one document:

    scan -> detect -> PointPatch -> BracketBalance -> Failed
                         |              |
                       verify         verify

Each state produces a candidate from the text handed over by the previous
state (fixes compound, they never restart from the original). The first
candidate that verifies ends the chain. When nothing verifies the pipeline
refuses to guess and returns the full diagnostic history instead.

The pipeline holds configuration only. All per-document state lives in
local variables, so one instance can serve many threads.

Author: Mvmender Team
Date: 2026-10-19
"""

import logging
from enum import Enum
from typing import Optional, Dict, List

from mvmender.models import RawDocument, RepairResult, StrategyAttempt, Issue
from mvmender.core.config import RepairOptions
from mvmender.core.diagnosis import Diagnoser
from mvmender.core.strategies import (
    BaseStrategy,
    NotApplicable,
    PointPatchStrategy,
    BracketBalanceStrategy,
)
from mvmender.core.verifier import verify

logger = logging.getLogger("mvmender.pipeline")

NO_STRATEGY = "None"


class ChainState(str, Enum):
    POINT_PATCH = "PointPatch"
    BRACKET_BALANCE = "BracketBalance"
    FAILED = "Failed"


ESCALATION = {
    ChainState.POINT_PATCH: ChainState.BRACKET_BALANCE,
    ChainState.BRACKET_BALANCE: ChainState.FAILED,
}


class RepairPipeline:
    """
    Drives a document through the escalation chain.
    """

    def __init__(self,
                 options: Optional[RepairOptions] = None,
                 strategies: Optional[Dict[ChainState, BaseStrategy]] = None):
        self.options = options or RepairOptions()
        self.diagnoser = Diagnoser(self.options)
        self.strategies = strategies or {
            ChainState.POINT_PATCH: PointPatchStrategy(),
            ChainState.BRACKET_BALANCE: BracketBalanceStrategy(),
        }

    def repair(self, raw_text: str, origin: str = "<memory>") -> RepairResult:
        """Shortcut for repair_document(RawDocument(raw_text, origin))."""
        return self.repair_document(RawDocument(text=raw_text, origin=origin))

    def repair_document(self, document: RawDocument) -> RepairResult:
        """
        Repairs one document.

        Args:
            document: The text exactly as read, plus the identifier carried
                into the result.

        Returns:
            A RepairResult. success=False means no candidate verified and
            the caller must not persist anything.
        """
        raw_text, origin = document.text, document.origin
        initial = self.diagnoser.diagnose(raw_text)
        if initial.parses:
            logger.debug(f"{origin}: already valid")
            return RepairResult(
                success=True,
                final_text=raw_text,
                strategy_used=NO_STRATEGY,
                issues=initial.issues,
                origin=origin,
            )

        original_error = initial.parse_error.detail["parser_error"]
        logger.debug(f"{origin}: {original_error}")

        current = initial
        attempts: List[StrategyAttempt] = []
        fixes: List[Issue] = []
        state = ChainState.POINT_PATCH

        while state is not ChainState.FAILED:
            strategy = self.strategies.get(state)
            if strategy is None:
                state = ESCALATION[state]
                continue

            try:
                candidate = strategy.apply(current, self.diagnoser)
            except NotApplicable as e:
                logger.debug(f"{origin}: {strategy.name} not applicable ({e.reason})")
                attempts.append(StrategyAttempt(name=strategy.name, error=f"not applicable: {e.reason}"))
                state = ESCALATION[state]
                continue

            fixes.extend(candidate.applied_fixes)
            changed = candidate.text != current.text
            verdict = verify(candidate.text)

            if verdict.ok:
                attempts.append(StrategyAttempt(
                    name=strategy.name, error=None,
                    applied_fixes=candidate.applied_fixes, changed=changed,
                ))
                logger.info(f"{origin}: repaired by {strategy.name} ({len(fixes)} fix(es))")
                return RepairResult(
                    success=True,
                    final_text=candidate.text,
                    strategy_used=strategy.name,
                    fixes_applied=tuple(fixes),
                    original_error=original_error,
                    attempted_strategies=tuple(attempts),
                    issues=initial.issues,
                    origin=origin,
                )

            logger.debug(f"{origin}: {strategy.name} candidate still invalid ({verdict.error})")
            attempts.append(StrategyAttempt(
                name=strategy.name, error=verdict.error,
                applied_fixes=candidate.applied_fixes, changed=changed,
            ))
            current = self.diagnoser.diagnose(candidate.text)
            state = ESCALATION[state]

        logger.warning(f"{origin}: could not be repaired automatically ({original_error})")
        return RepairResult(
            success=False,
            original_error=original_error,
            attempted_strategies=tuple(attempts),
            issues=initial.issues,
            origin=origin,
        )
