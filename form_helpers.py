"""
Interaction protocols shared by the scenarios.

Each helper turns one raw client interaction into an explicit step with
a defined failure path, so the scenarios read as straight-line code.
"""

from __future__ import annotations

import logging
from typing import Optional

from client.surface import Action, Control, Dialog, Form, Invocation, NewForm, NoSurface
from scenario_errors import InteractionError, UnexpectedDialog, ValidationError
from timing import Pacer

logger = logging.getLogger(__name__)


def close_form(form: Optional[Form]) -> None:
    """Close a form, logging instead of raising if the client refuses."""
    if form is None:
        return
    try:
        form.close()
    except Exception as e:
        logger.warning(f"Could not close form '{getattr(form, 'caption', '?')}': {e}")


def _surface_form(invocation: Invocation) -> Optional[Form]:
    if isinstance(invocation, (Dialog, NewForm)):
        return invocation.form
    return None


def expect_no_surface(invocation: Invocation, step: str) -> None:
    """Accept only NoSurface; anything else is closed and reported."""
    if isinstance(invocation, NoSurface):
        return
    form = _surface_form(invocation)
    caption = getattr(form, 'caption', '?')
    close_form(form)
    raise UnexpectedDialog(caption, step)


def answer_dialog(dialog: Form, label: str, step: str = "") -> Invocation:
    """
    Invoke the answer `label` on a dialog.

    A dialog that does not offer the answer is not the dialog the step
    expected: it is closed and reported as UnexpectedDialog. A dialog whose
    answer fails to go through is closed before the error propagates.
    """
    answer = dialog.find_action(label)
    if answer is None:
        close_form(dialog)
        raise UnexpectedDialog(dialog.caption, step or f"answering '{label}'")
    try:
        return answer.invoke()
    except InteractionError:
        close_form(dialog)
        raise


def set_and_expect_optional_dialog(control: Control, value: str,
                                   answer: str = "Yes",
                                   pacer: Optional[Pacer] = None) -> str:
    """
    Set a control's value and acknowledge any warning it raises.

    The warning text is never inspected: the dialog is confirmed with
    `answer` so the assigned value is kept. Returns the value read back
    from the control after the commit.
    """
    if pacer is not None:
        pacer.entry()

    result = control.set_value(value)
    step = f"setting '{control.name}'"

    if isinstance(result, Dialog):
        logger.debug(f"  Acknowledging '{result.form.caption}' after {step}")
        expect_no_surface(answer_dialog(result.form, answer, step), step)
    elif isinstance(result, NewForm):
        expect_no_surface(result, step)

    return control.get_value()


def activate(control: Control) -> None:
    expect_no_surface(control.activate(), f"activating '{control.name}'")


def catch_new_form(action: Action, page_id: Optional[int] = None) -> Form:
    """Invoke an action that must open a new form (optionally a given page)."""
    result = action.invoke()
    step = f"invoking '{action.label}'"

    if isinstance(result, Dialog):
        close_form(result.form)
        raise UnexpectedDialog(result.form.caption, step)
    if not isinstance(result, NewForm):
        raise InteractionError(f"No form opened when {step}")

    form = result.form
    if page_id is not None and form.page_id != page_id:
        close_form(form)
        raise InteractionError(
            f"Expected page {page_id} when {step}, got {form.page_id} ('{form.caption}')"
        )
    return form


def optional_dialog(invocation: Invocation, step: str) -> Optional[Form]:
    """Return the dialog an interaction raised, None if it raised nothing."""
    if isinstance(invocation, Dialog):
        return invocation.form
    expect_no_surface(invocation, step)
    return None


def catch_dialog(action: Action) -> Optional[Form]:
    """Invoke an action and return the dialog it raised, or None."""
    return optional_dialog(action.invoke(), f"invoking '{action.label}'")


def validate_form(form: Form) -> None:
    """Raise ValidationError if the form reports any field error."""
    errors = form.validate()
    if errors:
        raise ValidationError(errors, form.caption)
