from __future__ import annotations

# Runtime package version from the installed distribution metadata.
try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("captchakit")
except Exception:  # pragma: no cover
    # source checkout without an install
    __version__ = "0.0.0"

from .api.errors import CaptchaKitError, EventLoopRequired, InvalidOperationError, MalformedArgument, ScriptLoadError
from .core.config import LoaderConfig
from .protocol.props import WidgetProps
from .runtime.loader import LoadStatus, ScriptLoader, ScriptRequest, configure_loader, get_loader, reset_loader
from .runtime.widget import LifecycleState, WidgetController

__all__ = [
    "CaptchaKitError",
    "EventLoopRequired",
    "InvalidOperationError",
    "LifecycleState",
    "LoadStatus",
    "LoaderConfig",
    "MalformedArgument",
    "ScriptLoadError",
    "ScriptLoader",
    "ScriptRequest",
    "WidgetController",
    "WidgetProps",
    "__version__",
    "configure_loader",
    "get_loader",
    "reset_loader",
]
