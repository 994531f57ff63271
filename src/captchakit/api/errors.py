# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Error taxonomy for captchakit.

Only `ScriptLoadError` reaches host code by default, and it does so through
the `on_error` callback rather than by propagating. The operation errors are
raised only by controllers built with `strict=True`.
"""


class CaptchaKitError(Exception):
    """Base class for all captchakit errors."""

    ...


class ScriptLoadError(CaptchaKitError):
    """
    The widget API script failed to load (network error, blocked host, bad
    response). Permanent for the lifetime of the page; never retried.
    """

    def __init__(self, reason: str = "script-error") -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidOperationError(CaptchaKitError):
    """An instance operation was issued while the widget is not rendered."""

    ...


class MalformedArgument(CaptchaKitError):
    """`execute`/`set_data` received a value that is not a mapping."""

    ...


class LoaderNotConfigured(CaptchaKitError):
    """The process-wide script loader was requested before `configure_loader()`."""

    ...


class EventLoopRequired(CaptchaKitError):
    """A script request was made outside a running asyncio event loop."""

    ...
