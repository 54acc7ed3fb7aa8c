"""
Runs one scenario function against one session and captures its outcome.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from client.surface import UserSession
from form_helpers import close_form
from scenario_errors import ScenarioFailure, ScenarioInconclusive
from scenario_models import OutcomeStatus, ScenarioOutcome

logger = logging.getLogger(__name__)

Scenario = Callable[[UserSession], None]


def run_page_action(session: UserSession, page_id: int) -> None:
    """Open a page and close it again."""
    form = session.open_page(page_id)
    close_form(form)


class ScenarioRunner:
    """
    Executes scenarios synchronously and reports exactly one outcome each.

    No retries happen here; a failed iteration only ends that iteration.
    """

    def __init__(self, reporter: Optional[Callable[[ScenarioOutcome], None]] = None):
        self.reporter = reporter

    def run(self, session: UserSession, scenario: Scenario,
            name: Optional[str] = None) -> ScenarioOutcome:
        name = name or getattr(scenario, '__name__', 'scenario')
        start = time.perf_counter()

        try:
            scenario(session)
            status, message = OutcomeStatus.PASS, ""
        except ScenarioInconclusive as e:
            status, message = OutcomeStatus.INCONCLUSIVE, e.reason
        except ScenarioFailure as e:
            status, message = OutcomeStatus.FAIL, str(e)
        except Exception as e:
            status, message = OutcomeStatus.FAIL, f"{type(e).__name__}: {e}"

        outcome = ScenarioOutcome(
            scenario=name,
            status=status,
            message=message,
            identity=str(getattr(session, 'identity', '')),
            duration_seconds=time.perf_counter() - start,
        )
        self._report(outcome)
        return outcome

    def _report(self, outcome: ScenarioOutcome) -> None:
        if outcome.status == OutcomeStatus.PASS:
            logger.info(f"[{outcome.identity}] {outcome.scenario}: pass "
                        f"({outcome.duration_seconds:.2f}s)")
        elif outcome.status == OutcomeStatus.INCONCLUSIVE:
            logger.warning(f"[{outcome.identity}] {outcome.scenario}: inconclusive - "
                           f"{outcome.message}")
        else:
            logger.error(f"[{outcome.identity}] {outcome.scenario}: fail - {outcome.message}")

        if self.reporter is not None:
            self.reporter(outcome)
