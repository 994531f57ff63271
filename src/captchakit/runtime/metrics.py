# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Low-cardinality Prometheus metrics for the loader and widget controllers.

Labels are limited to outcomes and reasons; ids never become labels.
Pass a dedicated `CollectorRegistry` when more than one set is created per
process (tests do this).
"""

from dataclasses import dataclass
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge


@dataclass
class CaptchaMetrics:
    script_requests_total: Any
    script_loads_total: Any
    widget_renders_total: Any
    widget_removals_total: Any
    widget_cancelled_total: Any
    widgets_live: Any

    @classmethod
    def create(cls, registry: CollectorRegistry | None = None) -> CaptchaMetrics:
        reg = registry if registry is not None else REGISTRY
        return cls(
            script_requests_total=Counter(
                "captchakit_script_requests_total", "API script requests", ["result"], registry=reg
            ),
            script_loads_total=Counter(
                "captchakit_script_loads_total", "API script load outcomes", ["result"], registry=reg
            ),
            widget_renders_total=Counter("captchakit_widget_renders_total", "Widget instances rendered", registry=reg),
            widget_removals_total=Counter(
                "captchakit_widget_removals_total", "Widget instances removed", ["reason"], registry=reg
            ),
            widget_cancelled_total=Counter(
                "captchakit_widget_cancelled_total", "Pending renders dropped after unmount", registry=reg
            ),
            widgets_live=Gauge("captchakit_widgets_live", "Widget instances currently rendered", registry=reg),
        )


_default: CaptchaMetrics | None = None


def default_metrics() -> CaptchaMetrics:
    """Metrics registered on the global prometheus registry, created on first use."""
    global _default
    if _default is None:
        _default = CaptchaMetrics.create()
    return _default
