# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
captchakit.core.config
======================

Typed configuration for the script loader.
- No external deps; optional JSON file loading.
- Small env overrides for deployments that proxy the widget API.

If a config file path is not provided or not found, the public hCaptcha
endpoints are used.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_APIHOST = "https://js.hcaptcha.com"
SCRIPT_ID = "hcaptcha-api-script-id"
ONLOAD_NAME = "hcaptchaOnLoad"
API_NAME = "hcaptcha"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _try_load_json(path: Path | None) -> dict[str, Any]:
    if not path or not path.exists():
        return {}
    return json.loads(path.read_text(encoding="utf-8"))


def _parse_bool_env(name: str) -> bool | None:
    val = os.getenv(name, "").strip().lower()
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    return None


@dataclass(frozen=True)
class LoaderConfig:
    """Where the widget API script comes from and the global names it uses."""

    apihost: str = DEFAULT_APIHOST
    script_id: str = SCRIPT_ID
    onload_name: str = ONLOAD_NAME
    api_name: str = API_NAME
    load_async: bool = True

    def __post_init__(self) -> None:
        if not self.apihost or not self.apihost.startswith(("http://", "https://")):
            raise ValueError("apihost must be an http(s) origin")
        if self.apihost.endswith("/"):
            object.__setattr__(self, "apihost", self.apihost.rstrip("/"))
        for name in ("script_id", "onload_name", "api_name"):
            if not getattr(self, name):
                raise ValueError(f"{name} must be a non-empty string")

    @classmethod
    def load(cls, path: Path | str | None = None, *, overrides: dict[str, Any] | None = None) -> LoaderConfig:
        """
        Load config from a JSON file (if provided), then apply env and overrides.

        Env overrides:
          - CAPTCHAKIT_APIHOST
          - CAPTCHAKIT_LOAD_ASYNC (1/0, true/false)
        """
        data: dict[str, Any] = {}
        data.update(_try_load_json(Path(path) if path else None))

        if os.getenv("CAPTCHAKIT_APIHOST"):
            data["apihost"] = os.environ["CAPTCHAKIT_APIHOST"]
        load_async = _parse_bool_env("CAPTCHAKIT_LOAD_ASYNC")
        if load_async is not None:
            data["load_async"] = load_async

        if overrides:
            data.update(overrides)
        return cls(**data)
