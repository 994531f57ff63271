# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Widget properties
=================

`WidgetProps` is everything the host passes to one widget: rendering options
for the widget engine, loader options for the API script, and the host
callbacks. Instances are immutable; a host re-configures a widget by handing
the controller a new `WidgetProps` (see `WidgetController.on_props_changed`).

Two projections are derived from it:
- `script_request()` -> what the `ScriptLoader` needs (target, origin, query).
- `render_params()`  -> options forwarded to `CaptchaApi.render`.
"""

from collections.abc import Callable
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field

from ..runtime.loader import ScriptRequest

# A change to any of these forces the rendered instance to be re-created.
WATCHED_FIELDS: Final[tuple[str, ...]] = ("sitekey", "size", "theme", "tabindex", "language_override", "endpoint")

_CALLBACK_FIELDS: Final[frozenset[str]] = frozenset(
    {"on_load", "on_verify", "on_expire", "on_error", "on_open", "on_close", "on_chal_expired"}
)
_LOADER_FIELDS: Final[frozenset[str]] = frozenset(
    {"apihost", "load_async", "script_location", "script_query", "recaptcha_compat", "language_override", "id"}
)


class WidgetProps(BaseModel):
    """Host-supplied configuration of one widget. Unknown fields are passed to `render` verbatim."""

    model_config = ConfigDict(extra="allow", frozen=True, arbitrary_types_allowed=True)

    sitekey: str = Field(min_length=1)
    id: str | None = None

    # rendering
    size: str | None = None
    theme: str | dict[str, Any] | None = None
    tabindex: int | None = None
    hl: str | None = None
    language_override: str | None = None
    endpoint: str | None = None

    # host overrides (script query and render options)
    host: str | None = None
    assethost: str | None = None
    imghost: str | None = None
    reportapi: str | None = None
    sentry: bool | None = None
    custom: bool | None = None
    recaptcha_compat: bool | None = None

    # loader only
    apihost: str | None = None
    load_async: bool | None = None
    script_location: Any = None
    script_query: dict[str, Any] = Field(default_factory=dict)

    # host callbacks
    on_load: Callable[[], Any] | None = None
    on_verify: Callable[[str, str], Any] | None = None
    on_expire: Callable[[], Any] | None = None
    on_error: Callable[[Any], Any] | None = None
    on_open: Callable[[], Any] | None = None
    on_close: Callable[[], Any] | None = None
    on_chal_expired: Callable[[], Any] | None = None

    def script_request(self) -> ScriptRequest:
        query: dict[str, Any] = {
            "assethost": self.assethost,
            "endpoint": self.endpoint,
            "hl": self.language_override,
            "host": self.host,
            "imghost": self.imghost,
            "recaptchacompat": "off" if self.recaptcha_compat is False else None,
            "reportapi": self.reportapi,
            "sentry": self.sentry,
            "custom": self.custom,
        }
        query.update(self.script_query)
        return ScriptRequest(
            location=self.script_location,
            apihost=self.apihost,
            load_async=self.load_async,
            query=query,
        )

    def render_params(self) -> dict[str, Any]:
        """Options for `CaptchaApi.render`, without the bridged callbacks."""
        params = self.model_dump(exclude=set(_CALLBACK_FIELDS | _LOADER_FIELDS), exclude_none=True)
        hl = self.hl or self.language_override
        if hl:
            params["hl"] = hl
        return params

    def with_changes(self, **changes: Any) -> WidgetProps:
        """Return a validated copy with `changes` applied."""
        current = {name: getattr(self, name) for name in type(self).model_fields}
        return type(self).model_validate({**current, **(self.model_extra or {}), **changes})


def changed_watched_fields(prev: WidgetProps, nxt: WidgetProps) -> tuple[str, ...]:
    """Names of watched fields whose values differ between `prev` and `nxt`."""
    return tuple(name for name in WATCHED_FIELDS if getattr(prev, name) != getattr(nxt, name))
