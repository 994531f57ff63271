from __future__ import annotations

import pytest
from pydantic import ValidationError

from captchakit.protocol.props import WATCHED_FIELDS, WidgetProps, changed_watched_fields
from captchakit.runtime.loader import ScriptRequest

pytestmark = [pytest.mark.unit]

SITEKEY = "10000000-ffff-ffff-ffff-000000000001"


def test_sitekey_is_required_and_non_empty():
    with pytest.raises(ValidationError):
        WidgetProps()
    with pytest.raises(ValidationError):
        WidgetProps(sitekey="")


def test_props_are_immutable():
    p = WidgetProps(sitekey=SITEKEY)
    with pytest.raises(ValidationError):
        p.theme = "dark"


def test_script_request_carries_loader_options_and_query():
    marker = object()
    p = WidgetProps(
        sitekey=SITEKEY,
        apihost="https://proxy.test",
        load_async=False,
        script_location=marker,
        language_override="fr",
        hl="de",
        endpoint="https://ep.test",
        sentry=False,
        script_query={"extra": "1"},
    )
    req = p.script_request()
    assert isinstance(req, ScriptRequest)
    assert req.location is marker
    assert req.apihost == "https://proxy.test"
    assert req.load_async is False
    # the script language comes from language_override only
    assert req.query["hl"] == "fr"
    assert req.query["endpoint"] == "https://ep.test"
    assert req.query["sentry"] is False
    assert req.query["extra"] == "1"
    assert req.query["recaptchacompat"] is None


@pytest.mark.parametrize("compat, expected", [(False, "off"), (True, None), (None, None)])
def test_recaptcha_compat_only_disables(compat, expected):
    p = WidgetProps(sitekey=SITEKEY, recaptcha_compat=compat)
    assert p.script_request().query["recaptchacompat"] == expected


def test_render_params_exclude_callbacks_and_loader_fields():
    p = WidgetProps(
        sitekey=SITEKEY,
        id="w1",
        theme="dark",
        size="compact",
        tabindex=3,
        apihost="https://proxy.test",
        load_async=True,
        script_query={"x": 1},
        on_verify=lambda t, k: None,
        on_load=lambda: None,
    )
    params = p.render_params()
    assert params == {"sitekey": SITEKEY, "theme": "dark", "size": "compact", "tabindex": 3}


def test_render_hl_falls_back_to_language_override():
    assert WidgetProps(sitekey=SITEKEY, language_override="es").render_params()["hl"] == "es"
    assert WidgetProps(sitekey=SITEKEY, language_override="es", hl="it").render_params()["hl"] == "it"
    assert "hl" not in WidgetProps(sitekey=SITEKEY).render_params()


def test_unknown_fields_pass_through_to_render():
    p = WidgetProps(sitekey=SITEKEY, rqdata="opaque")
    assert p.render_params()["rqdata"] == "opaque"


def test_with_changes_revalidates_and_keeps_extras():
    cb = lambda: None  # noqa: E731
    p = WidgetProps(sitekey=SITEKEY, on_open=cb, rqdata="opaque")
    q = p.with_changes(theme="dark")
    assert q.theme == "dark"
    assert q.on_open is cb
    assert q.render_params()["rqdata"] == "opaque"
    with pytest.raises(ValidationError):
        p.with_changes(sitekey="")


def test_changed_watched_fields():
    base = WidgetProps(sitekey=SITEKEY, theme="light", host="a.test")
    assert changed_watched_fields(base, base.with_changes(host="b.test")) == ()
    assert changed_watched_fields(base, base.with_changes(theme="dark", size="compact")) == ("size", "theme")
    assert set(WATCHED_FIELDS) == {"sitekey", "size", "theme", "tabindex", "language_override", "endpoint"}
