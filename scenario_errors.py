"""
Error taxonomy for load-test scenarios.

ScenarioFailure subclasses end an iteration as Fail, ScenarioInconclusive
ends it as Inconclusive. AuthenticationFailure is raised while creating a
session and is never retried.
"""

from __future__ import annotations


class LoadTestError(Exception):
    """Base class for all load-test errors."""


class AuthenticationFailure(LoadTestError):
    """Credentials or connectivity rejected while creating a session."""


class ScenarioFailure(LoadTestError):
    """Hard failure of the current scenario iteration."""


class EmptySelectionError(ScenarioFailure):
    """A random draw found no row to select."""


class ValidationError(ScenarioFailure):
    """The form reported field errors."""

    def __init__(self, errors: list[str], caption: str = ""):
        self.errors = list(errors)
        self.caption = caption
        where = f" on '{caption}'" if caption else ""
        super().__init__(f"Validation failed{where}: {'; '.join(self.errors)}")


class UnexpectedDialog(ScenarioFailure):
    """A dialog (or form) appeared that the current step did not anticipate."""

    def __init__(self, caption: str, step: str = ""):
        self.caption = caption
        self.step = step
        where = f" during {step}" if step else ""
        super().__init__(f"Unexpected dialog '{caption}'{where}")


class InteractionError(ScenarioFailure):
    """Generic fault reported by the UI layer (missing control, timeout, ...)."""


class ScenarioInconclusive(LoadTestError):
    """The iteration ended without a verdict."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class MissingExpectedDialog(ScenarioInconclusive):
    """A confirmation dialog the step waited for never appeared."""
