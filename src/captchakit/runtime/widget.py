# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Per-widget lifecycle controller.

    UNINITIALIZED --on_mount--> AWAITING_API --script ready--> RENDERED
          |                          |                          |  ^
          +---- API already ready ---------------------------->+  | watched prop change
                                     |                          v  | (remove + render)
                                     +------- on_unmount ----> REMOVED

The host drives the controller through `on_mount`, `on_props_changed` and
`on_unmount`. Everything that talks to the widget engine goes through
`live()`, which yields a `LiveInstance` only while the widget is rendered;
otherwise operations are silent no-ops (or `InvalidOperationError` with
`strict=True`).
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from ..api.errors import InvalidOperationError, MalformedArgument
from ..api.page import CaptchaApi, Element
from ..core.logging import get_logger, log_context, swallow, warn_once
from ..core.utils import is_mapping_arg
from ..protocol.props import WidgetProps, changed_watched_fields
from .bridge import CallbackBridge
from .loader import ScriptLoader
from .metrics import CaptchaMetrics


class LifecycleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    AWAITING_API = "awaiting_api"
    RENDERED = "rendered"
    REMOVED = "removed"


@dataclass(frozen=True)
class LiveInstance:
    """Borrowed handle to a rendered widget; valid until the controller leaves RENDERED."""

    api: CaptchaApi
    captcha_id: str

    def reset(self) -> None:
        self.api.reset(self.captcha_id)

    def remove(self) -> None:
        self.api.remove(self.captcha_id)

    def execute(self, options: Mapping[str, Any] | None = None) -> Any:
        return self.api.execute(self.captcha_id, options)

    def set_data(self, data: Mapping[str, Any] | None) -> None:
        self.api.set_data(self.captcha_id, data)

    def get_response(self) -> str:
        return self.api.get_response(self.captcha_id)

    def get_resp_key(self) -> str:
        return self.api.get_resp_key(self.captcha_id)


class WidgetController:
    def __init__(
        self,
        props: WidgetProps,
        *,
        loader: ScriptLoader,
        container: Element,
        strict: bool = False,
        metrics: CaptchaMetrics | None = None,
    ) -> None:
        self.props = props
        self.loader = loader
        self.container = container
        self.strict = strict
        self.metrics = metrics or loader.metrics
        self._log = get_logger("widget")

        self._api_ready = loader.is_api_ready()
        self._state = LifecycleState.UNINITIALIZED
        self._captcha_id: str | None = None
        self._generation = 0
        self._script_requested = False
        self._unmounted = False

    def __repr__(self) -> str:
        return f"<WidgetController id={self.widget_id!r} state={self._state.value} captcha_id={self._captcha_id!r}>"

    # ---- state

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def captcha_id(self) -> str | None:
        return self._captcha_id

    @property
    def generation(self) -> int:
        """Number of instances rendered so far; identifies the current one."""
        return self._generation

    @property
    def widget_id(self) -> str | None:
        return self.props.id

    def is_ready(self) -> bool:
        return self._api_ready and self._state is LifecycleState.RENDERED

    def live(self) -> LiveInstance | None:
        """The live instance handle, or None unless RENDERED with the API present."""
        if self._state is not LifecycleState.RENDERED or self._captcha_id is None:
            return None
        api = self.loader.api()
        if api is None:
            return None
        return LiveInstance(api=api, captcha_id=self._captcha_id)

    def _ctx(self):
        return log_context(widget_id=self.widget_id, captcha_id=self._captcha_id, state=self._state.value)

    def _guard(self, op: str) -> LiveInstance | None:
        live = self.live()
        if live is None:
            if self.strict:
                raise InvalidOperationError(f"{op}() requires a rendered widget (state={self._state.value})")
            with self._ctx():
                self._log.debug("operation ignored, widget not rendered", event="captcha.widget.noop", op=op)
        return live

    def _coerce(self, op: str, value: Any) -> Mapping[str, Any] | None:
        if is_mapping_arg(value):
            return value
        if self.strict:
            raise MalformedArgument(f"{op}() expects a mapping or None, got {type(value).__name__}")
        warn_once(
            self._log,
            f"widget.{op}.malformed",
            f"{op}() argument is not a mapping; passing None",
            got=type(value).__name__,
        )
        return None

    # ---- host lifecycle hooks

    def on_mount(self) -> None:
        with self._ctx():
            if self._api_ready:
                self.render(on_ready=self._fire_on_load)
                return
            self.load()

    def on_props_changed(self, prev: WidgetProps, nxt: WidgetProps) -> None:
        self.props = nxt
        changed = changed_watched_fields(prev, nxt)
        if not changed:
            return
        with self._ctx():
            if self.live() is None:
                # a pending render will pick up the new props
                self._log.debug("watched props changed before render", event="captcha.widget.props", fields=changed)
                return
            self._log.info("watched props changed, re-creating widget", event="captcha.widget.props", fields=changed)
            self._remove(reason="reconfigure", on_complete=self.render)

    def on_unmount(self) -> None:
        with self._ctx():
            self._unmounted = True
            live = self.live()
            if live is None:
                if self._state is LifecycleState.AWAITING_API:
                    self._log.debug("unmounted while awaiting api", event="captcha.widget.unmount_pending")
                self._state = LifecycleState.REMOVED
                return
            # clear stored token and timers before the engine drops the widget
            with swallow(logger=self._log, level=logging.WARNING, code="widget.unmount.reset", expected=False):
                live.reset()
            self._state = LifecycleState.REMOVED
            self._captcha_id = None
            try:
                live.remove()
            finally:
                self._count_removed("unmount")
            self._log.info("widget removed on unmount", event="captcha.widget.unmounted")

    # ---- loading / rendering

    def load(self) -> None:
        """Request the API script once per controller and wait for it without blocking."""
        if self._script_requested:
            return
        signal = self.loader.request(self.props.script_request())
        self._script_requested = True
        self._state = LifecycleState.AWAITING_API
        signal.add_done_callback(self._on_script_settled)

    def _on_script_settled(self, signal: asyncio.Future[None]) -> None:
        if signal.cancelled():
            return
        exc = signal.exception()
        with self._ctx():
            if self._unmounted:
                self.metrics.widget_cancelled_total.inc()
                self._log.debug("pending render dropped after unmount", event="captcha.widget.cancelled")
                return
            if exc is not None:
                self._state = LifecycleState.UNINITIALIZED
                self._log.warning("widget api unavailable", event="captcha.widget.load_failed", reason=str(exc))
                if self.props.on_error:
                    self.props.on_error(exc)
                return
            self._api_ready = True
        self.render(on_ready=self._fire_on_load)

    def render(self, on_ready: Callable[[], Any] | None = None) -> None:
        """Create a widget instance with the current props; `on_ready` runs after the id is recorded."""
        if not self._api_ready or self._unmounted or self._state is LifecycleState.RENDERED:
            return
        api = self.loader.api()
        if api is None:
            self._log.warning("api reported ready but is missing", event="captcha.widget.api_missing")
            return
        self._generation += 1
        bridge = CallbackBridge(self, self._generation)
        params = {**self.props.render_params(), **bridge.handlers()}
        self._captcha_id = api.render(self.container, params)
        self._state = LifecycleState.RENDERED
        self.metrics.widget_renders_total.inc()
        self.metrics.widgets_live.inc()
        with self._ctx():
            self._log.info("widget rendered", event="captcha.widget.rendered")
        if on_ready:
            on_ready()

    def _fire_on_load(self) -> None:
        if self.props.on_load:
            self.props.on_load()

    def _count_removed(self, reason: str) -> None:
        self.metrics.widget_removals_total.labels(reason=reason).inc()
        self.metrics.widgets_live.dec()

    # ---- instance operations

    def reset(self) -> None:
        """Clear the stored token and the checkbox; the instance id is kept."""
        live = self._guard("reset")
        if live is not None:
            live.reset()

    def remove(self, on_complete: Callable[[], Any] | None = None) -> None:
        self._remove(reason="explicit", on_complete=on_complete)

    def _remove(self, *, reason: str, on_complete: Callable[[], Any] | None) -> None:
        live = self._guard("remove")
        if live is None:
            return
        self._state = LifecycleState.REMOVED
        self._captcha_id = None
        try:
            live.remove()
        finally:
            self._count_removed(reason)
        self._log.info("widget removed", event="captcha.widget.removed", reason=reason, captcha_id=live.captcha_id)
        if on_complete:
            on_complete()

    def execute(self, options: Any = None) -> Any:
        """Trigger a challenge programmatically; returns what the engine returns (may be awaitable)."""
        live = self._guard("execute")
        if live is None:
            return None
        return live.execute(self._coerce("execute", options))

    def set_data(self, data: Any) -> None:
        live = self._guard("set_data")
        if live is not None:
            live.set_data(self._coerce("set_data", data))

    def get_response(self) -> str | None:
        api = self.loader.api()
        if api is None or self._captcha_id is None:
            return None
        return api.get_response(self._captcha_id)

    def get_resp_key(self) -> str | None:
        api = self.loader.api()
        if api is None or self._captcha_id is None:
            return None
        return api.get_resp_key(self._captcha_id)
