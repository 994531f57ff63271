# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Callback bridge between the widget engine and host callbacks.

The engine calls the functions passed in the render options; the bridge
forwards them to the host callbacks of the owning controller, but only while
that controller has a live instance. Events from removed or stale instances
are dropped.
"""

from typing import TYPE_CHECKING, Any, Callable

from ..core.logging import get_logger

if TYPE_CHECKING:
    from .widget import LiveInstance, WidgetController

# render option name -> bridge method
EVENT_OPTIONS: dict[str, str] = {
    "open-callback": "handle_open",
    "close-callback": "handle_close",
    "error-callback": "handle_error",
    "chalexpired-callback": "handle_chal_expired",
    "expired-callback": "handle_expire",
    "callback": "handle_verify",
}


class CallbackBridge:
    """
    Handlers for one rendered instance. `generation` is the controller's render
    count when the instance was created; handlers of older generations are inert.
    """

    def __init__(self, controller: WidgetController, generation: int = 0) -> None:
        self._ctl = controller
        self._generation = generation
        self._log = get_logger("bridge")

    def handlers(self) -> dict[str, Callable[..., None]]:
        return {option: getattr(self, method) for option, method in EVENT_OPTIONS.items()}

    def _live(self) -> LiveInstance | None:
        if self._ctl.generation != self._generation:
            return None
        return self._ctl.live()

    def _dropped(self, name: str) -> None:
        self._log.debug("event dropped, widget not rendered", event="captcha.bridge.dropped", name=name)

    # ---- events

    def handle_verify(self, *_: Any) -> None:
        live = self._live()
        if live is None:
            self._dropped("verify")
            return
        token = live.get_response()
        resp_key = live.get_resp_key()
        cb = self._ctl.props.on_verify
        if cb:
            cb(token, resp_key)

    def handle_expire(self, *_: Any) -> None:
        live = self._live()
        if live is None:
            self._dropped("expire")
            return
        # keep the checkbox consistent with the cleared token
        live.reset()
        cb = self._ctl.props.on_expire
        if cb:
            cb()

    def handle_error(self, error: Any = None) -> None:
        live = self._live()
        if live is None:
            self._dropped("error")
            return
        live.reset()
        cb = self._ctl.props.on_error
        if cb:
            cb(error)

    def handle_open(self, *_: Any) -> None:
        self._forward("open", self._ctl.props.on_open)

    def handle_close(self, *_: Any) -> None:
        self._forward("close", self._ctl.props.on_close)

    def handle_chal_expired(self, *_: Any) -> None:
        self._forward("chal_expired", self._ctl.props.on_chal_expired)

    def _forward(self, name: str, cb: Callable[[], Any] | None) -> None:
        if self._live() is None:
            self._dropped(name)
            return
        if cb:
            cb()
