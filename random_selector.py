"""
Random record selection from list pages.

Only rows the list page has currently rendered (its viewport) take part
in the draw, not the whole underlying table.
"""

from __future__ import annotations

import logging

from client.surface import UserSession
from form_helpers import close_form
from scenario_errors import EmptySelectionError
from timing import SafeRandom

logger = logging.getLogger(__name__)


def select_random_record(session: UserSession, page_id: int, key_column: str,
                         rng: SafeRandom) -> str:
    """
    Open a list page and return the key of one visible row.

    Args:
        session: Session to open the list page in
        page_id: Numeric id of the list page
        key_column: Column whose value identifies the record (e.g. "No.")
        rng: Random source for the draw

    Returns:
        The key value of the chosen row

    Raises:
        EmptySelectionError: If no row is rendered or the key is empty
    """
    form = session.open_page(page_id)
    try:
        rows = list(form.repeater_rows())
        if not rows:
            raise EmptySelectionError(f"List page {page_id} shows no rows")

        row = rng.choice(rows)
        key = row.control(key_column).get_value()
        if not key:
            raise EmptySelectionError(
                f"Selected row on page {page_id} has no '{key_column}' value"
            )

        logger.debug(f"Selected {key_column} {key} from page {page_id} ({len(rows)} rows)")
        return key
    finally:
        close_form(form)
