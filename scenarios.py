"""
Order processor scenarios.

Each public method takes a session and performs one iteration; the
ScenarioRunner turns its result (or exception) into an outcome.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from client.surface import UserSession
from order_workflow import OrderWorkflow, PageIds
from random_selector import select_random_record
from scenario_errors import EmptySelectionError
from scenario_runner import run_page_action
from timing import Pacer, SafeRandom, SpanRecorder

logger = logging.getLogger(__name__)

# CLI name -> method name
SCENARIOS = {
    "open-sales-order-list": "open_sales_order_list",
    "open-customer-list": "open_customer_list",
    "open-item-list": "open_item_list",
    "lookup-random-customer": "lookup_random_customer",
    "create-and-post-sales-order": "create_and_post_sales_order",
}


class OrderProcessorScenarios:
    """Scenarios of one virtual user in the order processor role."""

    def __init__(self, rng: SafeRandom, pacer: Pacer, spans: SpanRecorder,
                 pages: Optional[PageIds] = None):
        self.rng = rng
        self.pacer = pacer
        self.spans = spans
        self.pages = pages or PageIds()
        self.last_workflow: Optional[OrderWorkflow] = None

    def get(self, name: str) -> Callable[[UserSession], None]:
        """Resolve a CLI scenario name to a bound scenario method."""
        if name not in SCENARIOS:
            raise ValueError(f"Unknown scenario: {name}")
        return getattr(self, SCENARIOS[name])

    def open_sales_order_list(self, session: UserSession) -> None:
        run_page_action(session, self.pages.sales_order_list)

    def open_customer_list(self, session: UserSession) -> None:
        run_page_action(session, self.pages.customer_list)

    def open_item_list(self, session: UserSession) -> None:
        run_page_action(session, self.pages.item_list)

    def lookup_random_customer(self, session: UserSession) -> None:
        customer_no = select_random_record(
            session, self.pages.customer_list, "No.", self.rng)
        if not customer_no:
            raise EmptySelectionError("No customer selected")

    def create_and_post_sales_order(self, session: UserSession) -> None:
        workflow = OrderWorkflow(
            session=session,
            rng=self.rng,
            pacer=self.pacer,
            spans=self.spans,
            pages=self.pages,
        )
        self.last_workflow = workflow
        workflow.run()
