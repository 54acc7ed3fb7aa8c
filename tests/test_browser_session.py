"""
Unit tests for the browser client.

No browser is started: URL helpers are pure, and interaction tracking
runs against a fake page that renders dialogs.
"""

import itertools
import unittest

from playwright.sync_api import Error as PlaywrightError

from client.browser_session import (
    DIALOG_CSS,
    DIALOG_ID_ATTR,
    MARK_SEEN_SCRIPT,
    NEW_DIALOG_CSS,
    PIN_DIALOG_SCRIPT,
    SEEN_ATTR,
    BrowserForm,
    BrowserSession,
    BrowserSessionFactory,
    page_id_of,
    page_url,
)
from client.surface import NO_SURFACE, Dialog
from scenario_errors import InteractionError
from settings_loader import Settings


class TestPageUrl(unittest.TestCase):
    """Test building page URLs on the service endpoint."""

    def test_plain_endpoint(self):
        result = page_url("https://erp.example.com/BC/", 42)
        self.assertEqual(result, "https://erp.example.com/BC/?page=42")

    def test_keeps_existing_query(self):
        result = page_url("https://erp.example.com/BC/?tenant=default", 22)
        self.assertEqual(result, "https://erp.example.com/BC/?tenant=default&page=22")

    def test_replaces_page(self):
        result = page_url("https://erp.example.com/BC/?page=9006", 31)
        self.assertEqual(result, "https://erp.example.com/BC/?page=31")


class TestPageIdOf(unittest.TestCase):
    """Test reading the page id back from a URL."""

    def test_page_id(self):
        self.assertEqual(page_id_of("https://erp.example.com/BC/?company=CRONUS&page=42"), 42)

    def test_no_page(self):
        self.assertIsNone(page_id_of("https://erp.example.com/BC/SignIn"))
        self.assertIsNone(page_id_of("https://erp.example.com/BC/?page=abc"))


class TestBrowserSessionFactory(unittest.TestCase):

    def test_keeps_settings(self):
        settings = Settings.from_dict({'auth': {'windows': True}})

        factory = BrowserSessionFactory(settings)

        self.assertIs(factory.settings, settings)



class FakeElement:
    def __init__(self, caption: str):
        self.caption = caption
        self.attrs = {"aria-label": caption}


class FakeLocator:
    """Just enough of a Playwright locator over the fake page's dialogs."""

    def __init__(self, page, selector, last=False):
        self.page = page
        self.selector = selector
        self.is_last = last

    def _matches(self):
        if self.selector == DIALOG_CSS:
            found = list(self.page.dialogs)
        elif self.selector == NEW_DIALOG_CSS:
            found = [d for d in self.page.dialogs if SEEN_ATTR not in d.attrs]
        elif self.selector.startswith(f"[{DIALOG_ID_ATTR}="):
            pinned = self.selector.split("'")[1]
            found = [d for d in self.page.dialogs if d.attrs.get(DIALOG_ID_ATTR) == pinned]
        else:
            found = []
        return found[-1:] if self.is_last else found

    @property
    def last(self):
        return FakeLocator(self.page, self.selector, last=True)

    def count(self):
        return len(self._matches())

    def evaluate_all(self, script):
        assert script == MARK_SEEN_SCRIPT
        for element in self._matches():
            element.attrs[SEEN_ATTR] = ""

    def evaluate(self, script, arg):
        assert script == PIN_DIALOG_SCRIPT
        self._matches()[0].attrs[DIALOG_ID_ATTR] = arg

    def get_attribute(self, name):
        return self._matches()[0].attrs.get(name)

    def inner_text(self):
        return self._matches()[0].caption


class FakePage:
    def __init__(self, url="https://erp.example.com/BC/?page=42"):
        self.url = url
        self.dialogs = []

    def locator(self, selector):
        return FakeLocator(self, selector)

    def wait_for_load_state(self, state=None):
        pass

    def wait_for_timeout(self, ms):
        pass


class FakeContext:
    def __init__(self, pages):
        self.pages = pages


def make_session(page):
    """A BrowserSession wired to a fake page, without starting a browser."""
    session = BrowserSession.__new__(BrowserSession)
    session.identity = "ORDERPROC#0"
    session.timeout_ms = 1000
    session._forms = []
    session._role_center = None
    session._dialog_ids = itertools.count(1)
    session._context = FakeContext([page])
    return session


class TestInteractDialogs(unittest.TestCase):
    """Test which dialogs an interaction reports."""

    def setUp(self):
        self.page = FakePage()
        self.session = make_session(self.page)
        self.order = BrowserForm(self.session, self.page, self.page.locator("body"),
                                 42, "Sales Order")

    def open_dialog(self, caption):
        self.page.dialogs.append(FakeElement(caption))

    def test_new_dialog(self):
        result = self.session.interact(
            self.order, lambda: self.open_dialog("Do you want to ship and invoice the order?"))

        self.assertIsInstance(result, Dialog)
        self.assertEqual(result.form.caption, "Do you want to ship and invoice the order?")
        self.assertTrue(result.form.is_dialog)
        self.assertEqual(result.form.root.count(), 1)

    def test_dialog_replacing_answered_dialog(self):
        """Answering OK closes the confirmation and raises the follow-up in its place."""
        confirmation = self.session.interact(
            self.order, lambda: self.open_dialog("Do you want to ship and invoice the order?")
        ).form

        def click_ok():
            self.page.dialogs.clear()
            self.open_dialog("Do you want to open the posted invoice?")

        result = self.session.interact(confirmation, click_ok)

        self.assertIsInstance(result, Dialog)
        self.assertEqual(result.form.caption, "Do you want to open the posted invoice?")
        self.assertEqual(confirmation.root.count(), 0)
        self.assertEqual(result.form.root.count(), 1)

    def test_dialog_still_open_is_not_reported_again(self):
        self.open_dialog("Customer 10000 has exceeded the credit limit")

        result = self.session.interact(self.order, lambda: None)

        self.assertEqual(result, NO_SURFACE)

    def test_answer_closing_dialog(self):
        dialog = self.session.interact(
            self.order, lambda: self.open_dialog("Credit limit exceeded")).form

        result = self.session.interact(dialog, self.page.dialogs.clear)

        self.assertEqual(result, NO_SURFACE)

    def test_failed_interaction(self):
        def detached():
            raise PlaywrightError("Element is not attached to the DOM")

        with self.assertRaises(InteractionError):
            self.session.interact(self.order, detached)


if __name__ == '__main__':
    unittest.main()
