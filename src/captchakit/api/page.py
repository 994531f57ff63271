# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Page and widget-engine protocols.

captchakit never creates DOM nodes or draws the challenge itself. The host
supplies a `Document` (where the API script is inserted and where the API
object appears) and a container `Element` per widget; once loaded, the widget
engine is any object satisfying `CaptchaApi`.
"""

from collections.abc import Callable, Mapping, MutableMapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Element(Protocol):
    """A node that can own children (the insertion target, a widget container)."""

    id: str | None

    @property
    def owner_document(self) -> Document | None: ...

    def append_child(self, child: Element) -> None: ...


@runtime_checkable
class ScriptElement(Element, Protocol):
    """A script node; `onerror` is invoked with the failure event when loading fails."""

    src: str
    async_: bool
    onerror: Callable[[Any], None] | None


@runtime_checkable
class Document(Protocol):
    """The document that owns the insertion target."""

    @property
    def head(self) -> Element: ...

    @property
    def default_view(self) -> MutableMapping[str, Any]:
        """Global scope of the document: the onload callback slot and the API object live here."""
        ...

    def get_element_by_id(self, element_id: str) -> Element | None: ...

    def create_element(self, tag: str) -> Element: ...


@runtime_checkable
class CaptchaApi(Protocol):
    """The externally loaded widget engine (`window.hcaptcha`)."""

    def render(self, container: Element, options: Mapping[str, Any]) -> str: ...
    def reset(self, captcha_id: str) -> None: ...
    def remove(self, captcha_id: str) -> None: ...
    def execute(self, captcha_id: str, options: Mapping[str, Any] | None = None) -> Any: ...
    def set_data(self, captcha_id: str, data: Mapping[str, Any] | None) -> None: ...
    def get_response(self, captcha_id: str) -> str: ...
    def get_resp_key(self, captcha_id: str) -> str: ...
