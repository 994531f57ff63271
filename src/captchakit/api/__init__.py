# SPDX-License-Identifier: Apache-2.0
"""Public contracts: error taxonomy and the page / widget-engine protocols."""

from .errors import (
    CaptchaKitError,
    EventLoopRequired,
    InvalidOperationError,
    LoaderNotConfigured,
    MalformedArgument,
    ScriptLoadError,
)
from .page import CaptchaApi, Document, Element, ScriptElement

__all__ = [
    "CaptchaApi",
    "CaptchaKitError",
    "Document",
    "Element",
    "EventLoopRequired",
    "InvalidOperationError",
    "LoaderNotConfigured",
    "MalformedArgument",
    "ScriptElement",
    "ScriptLoadError",
]
