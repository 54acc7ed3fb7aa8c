"""
Browser-backed client session: drives the application's web client with
the Playwright sync API.

Pages are opened by numeric id on the service endpoint, controls are
resolved by their accessible label, actions by role and name. Modal
dialogs are the web client's `[role=dialog]` overlays.

A Playwright sync instance is bound to the thread that started it, so a
session must be created, used and closed by the same virtual user thread.
"""

from __future__ import annotations

import itertools
import logging
import random
from typing import Callable, Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import BrowserContext, Locator, Page, sync_playwright

from client.surface import NO_SURFACE, Dialog, Invocation, NewForm
from scenario_errors import AuthenticationFailure, InteractionError

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--start-maximized",
]

# Lets Chromium answer NTLM/Negotiate challenges with the current Windows account
WINDOWS_AUTH_ARGS = ["--auth-server-allowlist=*", "--auth-negotiate-delegate-allowlist=*"]

ANTI_DETECT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {get: () => undefined});
"""

DIALOG_CSS = "[role=dialog]"
# Dialogs already on screen before an interaction carry this attribute
SEEN_ATTR = "data-loadtest-seen"
NEW_DIALOG_CSS = f"{DIALOG_CSS}:not([{SEEN_ATTR}])"
MARK_SEEN_SCRIPT = f"els => els.forEach(e => e.setAttribute('{SEEN_ATTR}', ''))"
# Pins a reported dialog so its form keeps resolving after it is marked seen
DIALOG_ID_ATTR = "data-loadtest-dialog"
PIN_DIALOG_SCRIPT = f"(e, id) => e.setAttribute('{DIALOG_ID_ATTR}', id)"
ROW_CSS = "[role=grid] [role=row]:has([role=gridcell])"
ALERT_CSS = "[role=alert]"
ACTION_ROLES = ("button", "menuitem", "link")

# Time for the client to render whatever an interaction opens
SETTLE_MS = 250


def page_url(service_url: str, page_id: int) -> str:
    """Service endpoint URL that opens page `page_id`."""
    parsed = urlparse(service_url)
    query = parse_qs(parsed.query)
    query["page"] = [str(page_id)]
    return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))


def page_id_of(url: str) -> Optional[int]:
    values = parse_qs(urlparse(url).query).get("page")
    if values and values[0].isdigit():
        return int(values[0])
    return None


class BrowserAction:
    def __init__(self, form: "BrowserForm", locator: Locator, label: str):
        self.form = form
        self.locator = locator
        self.label = label

    def invoke(self) -> Invocation:
        timeout = self.form.session.timeout_ms
        return self.form.session.interact(
            self.form, lambda: self.locator.click(timeout=timeout))


class BrowserControl:
    def __init__(self, form: "BrowserForm", locator: Locator, name: str):
        self.form = form
        self.locator = locator
        self.name = name

    def activate(self) -> Invocation:
        timeout = self.form.session.timeout_ms
        return self.form.session.interact(
            self.form, lambda: self.locator.click(timeout=timeout))

    def get_value(self) -> str:
        try:
            return self.locator.input_value(timeout=self.form.session.timeout_ms)
        except PlaywrightError as e:
            raise InteractionError(f"Could not read '{self.name}': {e}") from e

    def set_value(self, value: str) -> Invocation:
        timeout = self.form.session.timeout_ms

        def commit():
            self.locator.fill(value, timeout=timeout)
            # Leaving the field commits the value on the server
            self.locator.press("Tab", timeout=timeout)

        return self.form.session.interact(self.form, commit)


class BrowserForm:
    """A page, a dialog overlay or a repeater row inside one browser tab."""

    def __init__(self, session: "BrowserSession", page: Page, root: Locator,
                 page_id: Optional[int], caption: str,
                 is_dialog: bool = False, owns_page: bool = True):
        self.session = session
        self.page = page
        self.root = root
        self.page_id = page_id
        self.caption = caption
        self.is_dialog = is_dialog
        self.owns_page = owns_page

    def control(self, label: str) -> BrowserControl:
        locator = self.root.get_by_label(label, exact=True)
        if locator.count() == 0:
            raise InteractionError(f"Control '{label}' not found on '{self.caption}'")
        return BrowserControl(self, locator.first, label)

    def find_action(self, label: str) -> Optional[BrowserAction]:
        for role in ACTION_ROLES:
            locator = self.root.get_by_role(role, name=label, exact=True)
            if locator.count() > 0:
                return BrowserAction(self, locator.first, label)
        return None

    def action(self, label: str) -> BrowserAction:
        action = self.find_action(label)
        if action is None:
            raise InteractionError(f"Action '{label}' not found on '{self.caption}'")
        return action

    def repeater_rows(self) -> list["BrowserForm"]:
        rows = self.root.locator(ROW_CSS)
        return [
            BrowserForm(self.session, self.page, rows.nth(i), self.page_id,
                        f"{self.caption} row {i + 1}", owns_page=False)
            for i in range(rows.count())
        ]

    def validate(self) -> list[str]:
        texts = self.root.locator(ALERT_CSS).all_inner_texts()
        return [t.strip() for t in texts if t.strip()]

    def close(self) -> None:
        if self.is_dialog:
            self.page.keyboard.press("Escape")
        elif self.owns_page:
            if not self.page.is_closed():
                self.page.close()
        else:
            self.page.go_back(wait_until="domcontentloaded")
        self.session.forget(self)


class BrowserSession:
    """One logged-in browser context for one identity."""

    def __init__(self, identity, service_url: str, role_center_id: int,
                 headless: bool = True, ignore_certificate_errors: bool = True,
                 timeout_ms: int = 30000):
        self.identity = identity
        self.service_url = service_url
        self.role_center_id = role_center_id
        self.timeout_ms = timeout_ms
        self._forms: list[BrowserForm] = []
        self._role_center: Optional[BrowserForm] = None
        self._dialog_ids = itertools.count(1)

        args = list(BROWSER_ARGS)
        if identity.windows_auth:
            args += WINDOWS_AUTH_ARGS

        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=headless, args=args)
            vw = 1920 + random.randint(-100, 100)
            vh = 1080 + random.randint(-100, 100)
            self._context: BrowserContext = self._browser.new_context(
                viewport={"width": vw, "height": vh},
                locale="en-US",
                ignore_https_errors=ignore_certificate_errors,
            )
            self._context.set_default_timeout(timeout_ms)
            self._context.add_init_script(ANTI_DETECT_SCRIPT)
            self._login()
        except Exception:
            self._shutdown()
            raise

    def _login(self) -> None:
        page = self._context.new_page()
        try:
            page.goto(page_url(self.service_url, self.role_center_id),
                      wait_until="domcontentloaded", timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise AuthenticationFailure(f"Cannot reach {self.service_url}: {e}") from e

        if not self.identity.windows_auth:
            user_field = page.get_by_label("User name")
            if user_field.count() > 0:
                user_field.fill(self.identity.user_name or "")
                page.get_by_label("Password").fill(self.identity.password or "")
                page.get_by_role("button", name="Sign In").click()
                page.wait_for_load_state("domcontentloaded")
                page.wait_for_timeout(SETTLE_MS)
                if page.get_by_label("User name").count() > 0:
                    raise AuthenticationFailure(f"Login rejected for {self.identity}")

        if page_id_of(page.url) != self.role_center_id:
            raise AuthenticationFailure(
                f"Role center {self.role_center_id} did not open for {self.identity}")

        self._role_center = self._track(
            BrowserForm(self, page, page.locator("body"), self.role_center_id, "Role Center"))
        logger.info(f"Logged in as {self.identity}")

    def _track(self, form: BrowserForm) -> BrowserForm:
        self._forms.append(form)
        return form

    def forget(self, form: BrowserForm) -> None:
        if form in self._forms:
            self._forms.remove(form)

    @property
    def role_center(self) -> BrowserForm:
        if self._role_center is None or self._role_center.page.is_closed():
            self._role_center = self.open_page(self.role_center_id)
        return self._role_center

    def open_page(self, page_id: int) -> BrowserForm:
        page = self._context.new_page()
        try:
            page.goto(page_url(self.service_url, page_id),
                      wait_until="domcontentloaded", timeout=self.timeout_ms)
        except PlaywrightError as e:
            page.close()
            raise InteractionError(f"Could not open page {page_id}: {e}") from e
        return self._track(BrowserForm(self, page, page.locator("body"), page_id, page.title()))

    def open_forms(self) -> list[BrowserForm]:
        return list(self._forms)

    def interact(self, form: BrowserForm, fn: Callable[[], None]) -> Invocation:
        """
        Run one interaction and report the surface it opened, if any.

        A new dialog wins over a new tab, which wins over a same-tab
        navigation to another page. Dialogs on screen beforehand are
        marked, so a dialog that replaces the one just answered still
        counts as new.
        """
        page = form.page
        pages_before = list(self._context.pages)
        url_before = page.url

        try:
            page.locator(DIALOG_CSS).evaluate_all(MARK_SEEN_SCRIPT)
            fn()
            page.wait_for_load_state("domcontentloaded")
            page.wait_for_timeout(SETTLE_MS)
            dialog = self._pin_new_dialog(page)
        except PlaywrightError as e:
            raise InteractionError(f"Interaction on '{form.caption}' failed: {e}") from e

        if dialog is not None:
            caption = dialog.get_attribute("aria-label") or dialog.inner_text().split("\n")[0]
            return Dialog(self._track(BrowserForm(
                self, page, dialog, form.page_id, caption, is_dialog=True, owns_page=False)))

        new_pages = [p for p in self._context.pages if p not in pages_before]
        if new_pages:
            new_page = new_pages[-1]
            new_page.wait_for_load_state("domcontentloaded")
            return NewForm(self._track(BrowserForm(
                self, new_page, new_page.locator("body"), page_id_of(new_page.url),
                new_page.title())))

        if page.url != url_before and page_id_of(page.url) != form.page_id:
            return NewForm(self._track(BrowserForm(
                self, page, page.locator("body"), page_id_of(page.url), page.title(),
                owns_page=False)))

        return NO_SURFACE

    def _pin_new_dialog(self, page: Page) -> Optional[Locator]:
        """Locator of the newest unseen dialog on `page`, or None."""
        new_dialogs = page.locator(NEW_DIALOG_CSS)
        if new_dialogs.count() == 0:
            return None
        dialog_id = str(next(self._dialog_ids))
        new_dialogs.last.evaluate(PIN_DIALOG_SCRIPT, dialog_id)
        return page.locator(f"[{DIALOG_ID_ATTR}='{dialog_id}']")

    def close(self) -> None:
        open_forms = len(self._forms)
        if open_forms > 1:
            logger.debug(f"Closing session {self.identity} with {open_forms} open forms")
        self._forms.clear()
        self._shutdown()

    def _shutdown(self) -> None:
        browser, self._browser = getattr(self, "_browser", None), None
        playwright, self._playwright = getattr(self, "_playwright", None), None
        try:
            if browser is not None:
                browser.close()
        finally:
            if playwright is not None:
                playwright.stop()


class BrowserSessionFactory:
    """Creates BrowserSessions from load-test settings."""

    def __init__(self, settings):
        self.settings = settings

    def __call__(self, identity) -> BrowserSession:
        return BrowserSession(
            identity,
            service_url=self.settings.service_url,
            role_center_id=self.settings.pages.role_center,
            headless=self.settings.headless,
            ignore_certificate_errors=self.settings.ignore_certificate_errors,
            timeout_ms=self.settings.timing.interaction_timeout_ms,
        )
