"""
Sales order workflow: creates a multi-line sales order and posts it.

Runs strictly sequentially against one session: header, lines, validation,
post, confirmation. Optional warning dialogs raised while entering values
are acknowledged without inspection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import loadtest_config
from client.surface import Form, UserSession
from form_helpers import (
    activate,
    answer_dialog,
    catch_dialog,
    catch_new_form,
    close_form,
    expect_no_surface,
    optional_dialog,
    set_and_expect_optional_dialog,
    validate_form,
)
from random_selector import select_random_record
from scenario_errors import InteractionError, MissingExpectedDialog, ValidationError
from timing import Pacer, SafeRandom, SpanRecorder

logger = logging.getLogger(__name__)

# Half-open ranges: 2..5 lines, quantities 1..9
MIN_LINES, MAX_LINES = 2, 6
MIN_QUANTITY, MAX_QUANTITY = 1, 10

POST_DIALOG_MISSING = "Post dialog can't be found"


@dataclass
class PageIds:
    """Numeric ids of the pages the order processor works with."""
    role_center: int = loadtest_config.ROLE_CENTER_PAGE_ID
    customer_list: int = loadtest_config.CUSTOMER_LIST_PAGE_ID
    item_list: int = loadtest_config.ITEM_LIST_PAGE_ID
    sales_order_list: int = loadtest_config.SALES_ORDER_LIST_PAGE_ID
    sales_order: int = loadtest_config.SALES_ORDER_PAGE_ID
    activity_code: int = loadtest_config.ACTIVITY_CODE_PAGE_ID


@dataclass
class OrderLine:
    type: str
    item_no: str
    quantity: str
    qty_to_ship: str


@dataclass
class OrderWorkflow:
    """
    One run of "create and post sales order".

    States: start -> header created -> header committed -> lines entered
    -> lines validated -> posting -> post resolved -> closed.
    The order form is closed on every exit path.
    """
    session: UserSession
    rng: SafeRandom
    pacer: Pacer
    spans: SpanRecorder
    pages: PageIds = field(default_factory=PageIds)
    scenario: str = "create_and_post_sales_order"

    state: str = "start"
    order_no: Optional[str] = None
    lines: list[OrderLine] = field(default_factory=list)

    def run(self) -> None:
        customer_no = select_random_record(
            self.session, self.pages.customer_list, "No.", self.rng)
        # Activity code is mandatory for posting
        activity_code = select_random_record(
            self.session, self.pages.activity_code, "Code", self.rng)

        self.state = "header_creating"
        order = catch_new_form(
            self.session.role_center.action("Sales Order"), self.pages.sales_order)
        try:
            self._create_header(order, customer_no, activity_code)

            self.state = "lines_entering"
            line_count = self.rng.next(MIN_LINES, MAX_LINES)
            for line in range(line_count):
                self._add_line(order, line)

            validate_form(order)
            self.state = "lines_validated"

            self._post(order)
            self.state = "post_resolved"
        finally:
            close_form(order)
            self.state = "closed"

    def _create_header(self, order: Form, customer_no: str, activity_code: str) -> None:
        # Focusing No. assigns the number, leaving for Customer No. inserts the record
        activate(order.control("No."))
        activate(order.control("Customer No."))

        self.order_no = order.control("No.").get_value()
        logger.info(f"Created Sales Order No. {self.order_no}")

        # Credit limit warnings are acknowledged
        set_and_expect_optional_dialog(
            order.control("Customer No."), customer_no, pacer=self.pacer)
        set_and_expect_optional_dialog(
            order.control("Activity Code"), activity_code, pacer=self.pacer)

        validate_form(order)
        self.state = "header_committed"

    def _add_line(self, order: Form, line: int) -> None:
        rows = order.repeater_rows()
        if line >= len(rows):
            raise InteractionError(f"Sales order shows {len(rows)} line rows, need row {line + 1}")
        row = rows[line]

        activate(row.control("Type"))
        line_type = set_and_expect_optional_dialog(
            row.control("Type"), "Item", pacer=self.pacer)

        item_no = select_random_record(
            self.session, self.pages.item_list, "No.", self.rng)
        set_and_expect_optional_dialog(row.control("No."), item_no, pacer=self.pacer)

        quantity = str(self.rng.next(MIN_QUANTITY, MAX_QUANTITY))
        committed_qty = set_and_expect_optional_dialog(
            row.control("Quantity"), quantity, pacer=self.pacer)
        committed_to_ship = set_and_expect_optional_dialog(
            row.control("Qty. to Ship"), quantity, answer="OK", pacer=self.pacer)

        if committed_to_ship != committed_qty:
            raise ValidationError(
                [f"Line {line + 1}: Qty. to Ship {committed_to_ship} "
                 f"differs from Quantity {committed_qty}"],
                order.caption,
            )

        self.lines.append(OrderLine(line_type, item_no, committed_qty, committed_to_ship))
        logger.debug(f"  Line {line + 1}: {item_no} x {committed_qty}")

        self.pacer.think()

    def _post(self, order: Form) -> None:
        self.state = "posting"
        with self.spans.span("Post", self.scenario):
            confirmation = catch_dialog(order.action("Post..."))

        if confirmation is None:
            # Surface a hidden validation error before giving up
            validate_form(order)
            raise MissingExpectedDialog(POST_DIALOG_MISSING)

        with self.spans.span("ConfirmShipAndInvoice", self.scenario):
            follow_up = optional_dialog(
                answer_dialog(confirmation, "OK", "confirming post"), "confirming post")
            if follow_up is not None:
                # "The order has been posted ... do you want to open the posted invoice?"
                expect_no_surface(
                    answer_dialog(follow_up, "No", "declining to open posted document"),
                    "declining to open posted document",
                )

        logger.info(f"Posted Sales Order No. {self.order_no} with {len(self.lines)} lines")
