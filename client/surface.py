"""
Capability surface of the application client.

Scenarios only talk to these protocols, so the browser implementation can
be swapped for an in-memory fake in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence, Union


@dataclass(frozen=True)
class NoSurface:
    """The interaction produced no new form or dialog."""


@dataclass(frozen=True)
class NewForm:
    """The interaction opened a new top-level form."""
    form: Any


@dataclass(frozen=True)
class Dialog:
    """The interaction raised a modal dialog."""
    form: Any


Invocation = Union[NoSurface, NewForm, Dialog]

NO_SURFACE = NoSurface()


class Action(Protocol):
    """A named command on a form."""

    label: str

    def invoke(self) -> Invocation:
        """Run the command and report what it opened."""
        ...


class Control(Protocol):
    """A named field on a form."""

    name: str

    def activate(self) -> Invocation:
        """Move focus to the field."""
        ...

    def get_value(self) -> str:
        """Read the string-encoded value."""
        ...

    def set_value(self, value: str) -> Invocation:
        """Write a string-encoded value and commit it."""
        ...


class Form(Protocol):
    """A page or dialog rendered by the client."""

    caption: str
    page_id: Optional[int]

    def control(self, label: str) -> Control:
        ...

    def find_action(self, label: str) -> Optional[Action]:
        """Return the action with this label, or None if the form has none."""
        ...

    def action(self, label: str) -> Action:
        """Return the action with this label or raise InteractionError."""
        ...

    def repeater_rows(self) -> Sequence["Form"]:
        """Rows currently rendered in the form's repeater (the viewport)."""
        ...

    def validate(self) -> list[str]:
        """Return field errors; an empty list means the form is valid."""
        ...

    def close(self) -> None:
        ...


class UserSession(Protocol):
    """An authenticated client session."""

    identity: Any
    role_center: Form

    def open_page(self, page_id: int) -> Form:
        ...

    def open_forms(self) -> list[Form]:
        ...

    def close(self) -> None:
        ...
