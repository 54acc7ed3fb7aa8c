"""
Unit tests for the interaction helpers.
"""

import unittest

from client.surface import NO_SURFACE, Dialog, NewForm
from form_helpers import (
    answer_dialog,
    catch_dialog,
    catch_new_form,
    close_form,
    set_and_expect_optional_dialog,
    validate_form,
)
from scenario_errors import InteractionError, UnexpectedDialog, ValidationError
from tests.fakes import FakeControl, FakeForm, make_dialog


class TestSetAndExpectOptionalDialog(unittest.TestCase):
    """Test the ignore-warning-on-set protocol."""

    def test_no_dialog(self):
        control = FakeControl("Quantity")

        committed = set_and_expect_optional_dialog(control, "5")

        self.assertEqual(committed, "5")

    def test_warning_acknowledged_and_value_kept(self):
        """A credit warning is confirmed and the customer stays assigned."""
        warning = make_dialog("Credit limit exceeded", {"Yes": NO_SURFACE, "No": NO_SURFACE})
        control = FakeControl("Customer No.", on_set=lambda c, v: Dialog(warning))

        committed = set_and_expect_optional_dialog(control, "10000")

        self.assertEqual(committed, "10000")
        self.assertEqual(control.get_value(), "10000")
        self.assertTrue(warning.closed)
        self.assertEqual(warning.actions["Yes"].invocations, 1)
        self.assertEqual(warning.actions["No"].invocations, 0)

    def test_custom_answer(self):
        """Qty. to Ship confirms its dialog with OK."""
        dialog = make_dialog("Quantity to ship", {"OK": NO_SURFACE})
        control = FakeControl("Qty. to Ship", on_set=lambda c, v: Dialog(dialog))

        set_and_expect_optional_dialog(control, "3", answer="OK")

        self.assertEqual(dialog.actions["OK"].invocations, 1)

    def test_unexpected_dialog(self):
        """A dialog without the expected answer fails and is closed."""
        dialog = make_dialog("Something else", {"Close": NO_SURFACE})
        control = FakeControl("No.", on_set=lambda c, v: Dialog(dialog))

        with self.assertRaises(UnexpectedDialog) as ctx:
            set_and_expect_optional_dialog(control, "1000")

        self.assertEqual(ctx.exception.caption, "Something else")
        self.assertTrue(dialog.closed)

    def test_chained_dialog_is_unexpected(self):
        """Acknowledging a warning must not raise yet another dialog."""
        second = make_dialog("Second", {"OK": NO_SURFACE})
        first = make_dialog("First", {"Yes": Dialog(second)})
        control = FakeControl("Customer No.", on_set=lambda c, v: Dialog(first))

        with self.assertRaises(UnexpectedDialog):
            set_and_expect_optional_dialog(control, "10000")

        self.assertTrue(second.closed)

    def test_new_form_is_unexpected(self):
        form = FakeForm("Item Card", 30)
        control = FakeControl("No.", on_set=lambda c, v: NewForm(form))

        with self.assertRaises(UnexpectedDialog):
            set_and_expect_optional_dialog(control, "1000")

        self.assertTrue(form.closed)


class TestCatchHelpers(unittest.TestCase):
    """Test catching new forms and dialogs."""

    def test_catch_new_form(self):
        order = FakeForm("Sales Order", 42)
        role_center = FakeForm("Role Center", 9006)
        action = role_center.add_action("Sales Order", NewForm(order))

        self.assertIs(catch_new_form(action, 42), order)

    def test_catch_new_form_wrong_page(self):
        other = FakeForm("Sales Quote", 41)
        action = FakeForm("Role Center").add_action("Sales Order", NewForm(other))

        with self.assertRaises(InteractionError):
            catch_new_form(action, 42)
        self.assertTrue(other.closed)

    def test_catch_new_form_nothing_opened(self):
        action = FakeForm("Role Center").add_action("Sales Order", NO_SURFACE)

        with self.assertRaises(InteractionError):
            catch_new_form(action, 42)

    def test_catch_new_form_dialog(self):
        dialog = make_dialog("Error", {"OK": NO_SURFACE})
        action = FakeForm("Role Center").add_action("Sales Order", Dialog(dialog))

        with self.assertRaises(UnexpectedDialog):
            catch_new_form(action, 42)

    def test_answer_that_fails_closes_dialog(self):
        dialog = FakeForm("Do you want to ship and invoice the order?")

        def lost_click():
            raise InteractionError("Interaction on dialog failed: detached")

        dialog.add_action("OK", lost_click)

        with self.assertRaises(InteractionError):
            answer_dialog(dialog, "OK", "confirming post")

        self.assertTrue(dialog.closed)

    def test_catch_dialog(self):
        dialog = make_dialog("Post", {"OK": NO_SURFACE})
        order = FakeForm("Sales Order", 42)

        self.assertIs(catch_dialog(order.add_action("Post...", Dialog(dialog))), dialog)
        self.assertIsNone(catch_dialog(order.add_action("Release", NO_SURFACE)))


class TestValidateAndClose(unittest.TestCase):

    def test_validate_form_passes(self):
        validate_form(FakeForm("Sales Order"))

    def test_validate_form_errors(self):
        form = FakeForm("Sales Order", errors=["Activity Code must have a value"])

        with self.assertRaises(ValidationError) as ctx:
            validate_form(form)

        self.assertEqual(ctx.exception.errors, ["Activity Code must have a value"])
        self.assertIn("Activity Code", str(ctx.exception))

    def test_close_form_never_raises(self):
        form = FakeForm("Sales Order")
        form.close_error = RuntimeError("connection lost")

        close_form(form)
        close_form(None)


if __name__ == '__main__':
    unittest.main()
