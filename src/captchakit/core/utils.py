# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
captchakit.core.utils
=====================

Small helpers with no external dependencies:
- Query-string serialization for the API script URL.
- Shape guard for mapping-valued arguments.
"""

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote


def _query_value(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


def generate_query(params: Mapping[str, Any] | None) -> str:
    """
    Serialize `params` as `key=value` pairs joined by `&`.

    `None` values are omitted; keys and values are percent-encoded.
    An empty mapping yields an empty string.
    """
    if not params:
        return ""
    return "&".join(
        f"{quote(str(k), safe='')}={quote(_query_value(v), safe='')}" for k, v in params.items() if v is not None
    )


def is_mapping_arg(value: Any) -> bool:
    """True for values accepted as `execute`/`set_data` arguments: None or a mapping."""
    return value is None or isinstance(value, Mapping)
