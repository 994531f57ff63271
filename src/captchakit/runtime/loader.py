# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Single-flight loader for the widget API script.

One `ScriptLoader` normally exists per page (see `configure_loader`). The
first `request()` inserts the script tag; every request, before or after the
script settles, gets the same readiness future back:

    signal = loader.request(props.script_request())
    signal.add_done_callback(on_settled)

The future resolves when the API calls the registered onload function and
fails with `ScriptLoadError` when the script tag reports an error. It settles
exactly once and is never reset; failure is permanent for the page.

The load state lives with the document, not the loader: extra loaders built
for the same page share its future, whichever of them inserted the tag.
"""

import asyncio
import functools
import weakref
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..api.errors import EventLoopRequired, LoaderNotConfigured, ScriptLoadError
from ..api.page import CaptchaApi, Document, Element
from ..core.config import LoaderConfig
from ..core.logging import get_logger
from ..core.utils import generate_query
from .metrics import CaptchaMetrics, default_metrics


class LoadStatus(str, Enum):
    NOT_REQUESTED = "not_requested"
    REQUESTED = "requested"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ScriptRequest:
    """
    Per-request loader options.

    Attributes:
        location: element the script is appended to (defaults to `document.head`).
        apihost: origin override (defaults to `LoaderConfig.apihost`).
        load_async: async flag for the script tag (defaults to `LoaderConfig.load_async`).
        query: extra query parameters, `None` values are dropped.
    """

    location: Element | None = None
    apihost: str | None = None
    load_async: bool | None = None
    query: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class _PageScript:
    """Load state of the API script in one document."""

    status: LoadStatus = LoadStatus.NOT_REQUESTED
    signal: asyncio.Future[None] | None = None

    def future(self) -> asyncio.Future[None]:
        if self.signal is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise EventLoopRequired(
                    "the script readiness signal needs a running event loop; call on_mount() from inside it"
                ) from e
            self.signal = loop.create_future()
        return self.signal


# document -> load state, shared by every loader pointed at that document
_pages: weakref.WeakKeyDictionary[Any, _PageScript] = weakref.WeakKeyDictionary()


def _page_script(doc: Document) -> _PageScript:
    page = _pages.get(doc)
    if page is None:
        page = _pages[doc] = _PageScript()
    return page


class ScriptLoader:
    def __init__(
        self,
        document: Document,
        cfg: LoaderConfig | None = None,
        *,
        metrics: CaptchaMetrics | None = None,
    ) -> None:
        self.document = document
        self.cfg = cfg or LoaderConfig()
        self.metrics = metrics or default_metrics()
        self._log = get_logger("loader")
        # document that received (or will receive) the script
        self._target: Document = document

    # ---- state

    @property
    def _scope(self) -> MutableMapping[str, Any]:
        return self._target.default_view

    @property
    def status(self) -> LoadStatus:
        return _page_script(self._target).status

    @property
    def signal(self) -> asyncio.Future[None]:
        """The page's shared readiness future, bound to the running loop on first access."""
        return _page_script(self._target).future()

    def api(self) -> CaptchaApi | None:
        return self._scope.get(self.cfg.api_name)

    def is_api_ready(self) -> bool:
        return self.api() is not None

    async def wait_ready(self) -> None:
        """Wait for the script to load; raises `ScriptLoadError` if it failed."""
        await asyncio.shield(self.signal)

    # ---- request

    def script_url(self, apihost: str | None = None, query: Mapping[str, Any] | None = None) -> str:
        origin = (apihost or self.cfg.apihost).rstrip("/")
        url = f"{origin}/1/api.js?render=explicit&onload={self.cfg.onload_name}"
        extra = generate_query(query)
        return f"{url}&{extra}" if extra else url

    def request(self, req: ScriptRequest | None = None) -> asyncio.Future[None]:
        """Insert the API script unless it was already requested; return the shared signal."""
        req = req or ScriptRequest()
        parent = req.location if req.location is not None else self.document.head
        doc = parent.owner_document or self.document
        self._target = doc
        page = _page_script(doc)
        signal = page.future()

        if doc.get_element_by_id(self.cfg.script_id) is not None:
            if not signal.done() and self.is_api_ready():
                # tag came from the host page, or its onload fired before anyone listened
                self._on_api_loaded(page)
            self.metrics.script_requests_total.labels(result="reused").inc()
            self._log.debug("api script already requested", event="captcha.script.reused", status=page.status.value)
            return signal

        # the slot must be filled before the tag can possibly load
        self._scope[self.cfg.onload_name] = functools.partial(self._on_api_loaded, page)

        script = doc.create_element("script")
        script.id = self.cfg.script_id
        script.src = self.script_url(req.apihost, req.query)
        script.async_ = self.cfg.load_async if req.load_async is None else bool(req.load_async)
        script.onerror = functools.partial(self._on_script_error, page)

        page.status = LoadStatus.REQUESTED
        parent.append_child(script)
        self.metrics.script_requests_total.labels(result="inserted").inc()
        self._log.info("api script inserted", event="captcha.script.inserted", src=script.src, async_=script.async_)
        return signal

    # ---- settlement

    def _on_api_loaded(self, page: _PageScript, *_: Any) -> None:
        signal = page.future()
        if signal.done():
            self._log.debug("duplicate onload ignored", event="captcha.script.onload_dup")
            return
        page.status = LoadStatus.READY
        signal.set_result(None)
        self.metrics.script_loads_total.labels(result="ready").inc()
        self._log.info("api script loaded", event="captcha.script.ready")

    def _on_script_error(self, page: _PageScript, event: Any = None) -> None:
        signal = page.future()
        if signal.done():
            return
        page.status = LoadStatus.FAILED
        signal.set_exception(ScriptLoadError("script-error"))
        self.metrics.script_loads_total.labels(result="failed").inc()
        self._log.error("api script failed to load", event="captcha.script.failed", detail=repr(event))


# ---------------------------------------------------------------------------
# Process-wide instance

_loader: ScriptLoader | None = None


def configure_loader(
    document: Document,
    cfg: LoaderConfig | None = None,
    *,
    metrics: CaptchaMetrics | None = None,
) -> ScriptLoader:
    """Create the page's loader on first call; later calls return the same instance."""
    global _loader
    if _loader is None:
        _loader = ScriptLoader(document, cfg, metrics=metrics)
    elif _loader.document is not document:
        get_logger("loader").warning(
            "loader already configured for another document", event="captcha.loader.reconfigure_ignored"
        )
    return _loader


def get_loader() -> ScriptLoader:
    if _loader is None:
        raise LoaderNotConfigured("call configure_loader(document) before mounting widgets")
    return _loader


def reset_loader() -> None:
    """Forget the process-wide loader and every page's load state. Test harnesses only."""
    global _loader
    _loader = None
    _pages.clear()
