# conftest.py
from __future__ import annotations

import os
import uuid

import pytest
from prometheus_client import CollectorRegistry

from captchakit.core import logging as corelog
from captchakit.core.logging import (
    bind_context,
    configure_from_env,
    enable_stdout_logging,
    get_logger,
    log_context,
)
from captchakit.protocol.props import WidgetProps
from captchakit.runtime.loader import ScriptLoader, reset_loader
from captchakit.runtime.metrics import CaptchaMetrics
from captchakit.runtime.widget import WidgetController
from tests.helpers import FakeCaptchaApi, InMemDocument

SITEKEY = "10000000-ffff-ffff-ffff-000000000001"


def pytest_addoption(parser):
    parser.addoption(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit captchakit logs in JSON format during tests",
    )


@pytest.fixture(scope="session", autouse=True)
def _configure_captchakit_logging(request):
    configure_from_env()
    prefer_json = request.config.getoption("--log-json")
    # unless the env already turned stdout on, default to the human formatter
    if os.getenv("CAPTCHAKIT_LOG_STDOUT", "").lower() not in ("1", "true", "yes", "on"):
        enable_stdout_logging(
            level="DEBUG",
            json_output=prefer_json,
            pretty=not prefer_json,
            route_errors_to_stderr=True,
        )
    bind_context(role="pytest")


@pytest.fixture(scope="session")
def session_run_id():
    return uuid.uuid4().hex[:8]


@pytest.fixture(autouse=True)
def _test_log_context(request, session_run_id):
    log = get_logger("test")
    with log_context(pytest_nodeid=request.node.nodeid, test_run=session_run_id):
        log.debug("pytest.test.start", event="pytest.test.start")
        yield


@pytest.fixture(autouse=True)
def _fresh_process_state():
    """Process-wide loader and warn_once registry must not leak between tests."""
    reset_loader()
    corelog._WARN_ONCE_SEEN.clear()
    yield
    reset_loader()


@pytest.fixture
def tlog():
    return get_logger("test")


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return CaptchaMetrics.create(registry)


@pytest.fixture
def page():
    return InMemDocument()


@pytest.fixture
def api():
    return FakeCaptchaApi()


@pytest.fixture
def loader(page, metrics):
    return ScriptLoader(page, metrics=metrics)


@pytest.fixture
def props_factory():
    def _make(**kw) -> WidgetProps:
        kw.setdefault("sitekey", SITEKEY)
        return WidgetProps(**kw)

    return _make


@pytest.fixture
def widget_factory(page, loader, props_factory):
    """Build controllers the way a host would: one container div per widget."""

    def _spawn(props: WidgetProps | None = None, *, strict: bool = False, **kw) -> WidgetController:
        props = props or props_factory(**kw)
        ctl = WidgetController(props, loader=loader, container=page.container(props.id), strict=strict)
        return ctl

    return _spawn
