from .captcha import FakeCaptchaApi, FakeWidget
from .page import InMemDocument, InMemElement, InMemScript
from .util import Recorder, settle

__all__ = [
    "FakeCaptchaApi",
    "FakeWidget",
    "InMemDocument",
    "InMemElement",
    "InMemScript",
    "Recorder",
    "settle",
]
