"""
UI client layer.

This package describes the capability surface the scenarios drive
(forms, controls, actions, dialogs) and ships a Playwright-backed
implementation of it.
"""

from .surface import (
    Action,
    Control,
    Dialog,
    Form,
    Invocation,
    NewForm,
    NoSurface,
    UserSession,
)

__all__ = [
    'Action',
    'Control',
    'Dialog',
    'Form',
    'Invocation',
    'NewForm',
    'NoSurface',
    'UserSession',
]
