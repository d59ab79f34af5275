"""Tests for the coordinate bundle and the result formatter."""

import math
from datetime import datetime, timedelta, timezone
from urllib.parse import unquote

import pytest

from sunclock_relay.core.bundle import BundleDecodeError, CoordinateBundle
from sunclock_relay.core.formatter import (
    ResultFormatter,
    device_error,
    device_success,
    scale_coord,
    utc_offset_seconds,
)
from sunclock_relay.core.session import RequestContext


def _formatter(host) -> ResultFormatter:
    return ResultFormatter(host, "http://cfg.test/show_coords.html", "http://cfg.test/coords_sent.html")


@pytest.mark.parametrize("degrees", [47.6062, -122.3321, 0.0, 89.99999912, -179.123456789, 12.3456784])
def test_scale_coord_rounds(degrees: float) -> None:
    scaled = scale_coord(degrees)
    assert isinstance(scaled, int)
    assert scaled == math.floor(degrees * 1_000_000 + 0.5)
    assert abs(scaled / 1_000_000 - degrees) <= 0.5e-6 + 1e-12


def test_device_success_shape() -> None:
    assert device_success(47.6062, -122.3321, 28800) == {
        "latitudeData": 47606200,
        "longitudeData": -122332100,
        "utcOffset": 28800,
    }


def test_device_error_shape() -> None:
    assert device_error(0, "No response from getCurrentPosition") == {
        "locationFailCode": 0,
        "locationFailMessage": "No response from getCurrentPosition",
    }


def test_utc_offset_sign_is_minutes_west() -> None:
    """Local time behind UTC gives a positive offset."""
    pst = datetime(2024, 1, 15, 12, 0, tzinfo=timezone(timedelta(hours=-8)))
    cet = datetime(2024, 1, 15, 12, 0, tzinfo=timezone(timedelta(hours=1)))
    assert utc_offset_seconds(pst) == 28800
    assert utc_offset_seconds(cet) == -3600


def test_bundle_wire_keys() -> None:
    b = CoordinateBundle(47.5, 8.25, 3600)
    assert b.to_dict() == {"lat": 47.5, "long": 8.25, "tz-off": 3600, "err-code": 0, "err-msg": ""}


def test_bundle_decode_keeps_enrichment() -> None:
    text = ('%7B%22lat%22%3A1.5%2C%22long%22%3A2.5%2C%22tz-off%22%3A0%2C%22err-code%22%3A0%2C'
            '%22err-msg%22%3A%22%22%2C%22place-name%22%3A%22Z%C3%BCrich%22%7D')
    b = CoordinateBundle.decode(text)
    assert (b.latitude, b.longitude) == (1.5, 2.5)
    assert b.place_name == "Zürich"


def test_bundle_encoding_is_uri_component() -> None:
    encoded = CoordinateBundle(1.0, 2.0, 0, 2, "a b&c").encode()
    assert " " not in encoded and "&" not in encoded and "#" not in encoded
    assert '"err-msg":"a b&c"' in unquote(encoded)


def test_bundle_keeps_unknown_keys() -> None:
    """Keys added by the config page survive a decode and re-encode."""
    b = CoordinateBundle.from_dict({"lat": 1.5, "long": 2.5, "units": "km", "zoom": 7})
    assert b.extra == {"units": "km", "zoom": 7}
    assert b.to_dict()["units"] == "km"
    assert CoordinateBundle.decode(b.encode()) == b


def test_bundle_extra_never_shadows_known_keys() -> None:
    b = CoordinateBundle(1.0, 2.0, extra={"lat": 99, "units": "mi"})
    assert b.to_dict()["lat"] == 1.0
    assert b.to_dict()["units"] == "mi"


def test_bundle_null_fields_take_defaults() -> None:
    b = CoordinateBundle.from_dict({"lat": 1.0, "long": 2.0, "tz-off": None, "err-code": None, "err-msg": None})
    assert (b.utc_offset, b.error_code, b.error_message) == (0, 0, "")
    assert b.ok


@pytest.mark.parametrize("text", ["not json", "%5B1%2C2%5D", "%7B%22lat%22%3A1%7D"])
def test_bundle_decode_rejects_garbage(text: str) -> None:
    with pytest.raises(BundleDecodeError):
        CoordinateBundle.decode(text)


async def test_success_to_device_without_confirmation(host) -> None:
    await _formatter(host).success(RequestContext(True, False), 47.6062, -122.3321, -7200)
    assert host.actions == [
        ("appmessage", {"latitudeData": 47606200, "longitudeData": -122332100, "utcOffset": -7200}),
    ]


async def test_confirmation_is_one_shot(host) -> None:
    """The coords-sent page opens after the message, then the flag is cleared."""
    ctx = RequestContext(send_to_device=True, show_confirmation=True)
    fmt = _formatter(host)
    await fmt.success(ctx, 1.0, 2.0, 0)
    await fmt.success(ctx, 1.0, 2.0, 0)
    assert [k for k, _ in host.actions] == ["appmessage", "openURL", "appmessage"]
    assert host.urls == ["http://cfg.test/coords_sent.html"]
    assert ctx.show_confirmation is False


async def test_success_to_screen(host) -> None:
    await _formatter(host).success(RequestContext(False, False), 1.25, -2.5, 3600)
    assert host.messages == []
    (url,) = host.urls
    base, fragment = url.split("#", 1)
    assert base == "http://cfg.test/show_coords.html"
    assert CoordinateBundle.decode(fragment) == CoordinateBundle(1.25, -2.5, 3600)


async def test_error_to_screen(host) -> None:
    await _formatter(host).error(RequestContext(False, False), 1, "denied")
    bundle = CoordinateBundle.decode(host.urls[0].split("#", 1)[1])
    assert (bundle.latitude, bundle.longitude, bundle.utc_offset) == (0, 0, 0)
    assert (bundle.error_code, bundle.error_message) == (1, "denied")
    assert not bundle.ok


async def test_error_to_device_never_confirms(host) -> None:
    await _formatter(host).error(RequestContext(True, True), 2, "unavailable")
    assert host.actions == [("appmessage", {"locationFailCode": 2, "locationFailMessage": "unavailable"})]
