"""
Sunclock relay — Coordinate Bundle

The record shown on the phone's "show coordinates" page and handed back to
us for reverse geocoding. On the wire it is JSON, URL-component encoded:

    {"lat": 47.6, "long": -122.3, "tz-off": 28800, "err-code": 0, "err-msg": "",
     "place-name": "...", "range": "...", "region": "...", "country": "..."}

The last four keys only appear after reverse geocoding. Keys the config
page adds that we do not know about are carried through untouched.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote, unquote

_KNOWN_KEYS = frozenset(
    ("lat", "long", "tz-off", "err-code", "err-msg", "place-name", "range", "region", "country")
)

# Same unreserved set as encodeURIComponent, which the config pages use
_URI_SAFE = "-_.!~*'()"


class BundleDecodeError(ValueError):
    pass


@dataclass
class CoordinateBundle:
    latitude: float
    longitude: float
    utc_offset: int = 0
    error_code: int = 0
    error_message: str = ""
    place_name: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    distance_km: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error_code == 0 and not self.error_message

    @classmethod
    def failure(cls, code: int, message: str) -> "CoordinateBundle":
        return cls(latitude=0, longitude=0, utc_offset=0, error_code=code, error_message=message)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {k: v for k, v in self.extra.items() if k not in _KNOWN_KEYS}
        d.update({
            "lat": self.latitude,
            "long": self.longitude,
            "tz-off": self.utc_offset,
            "err-code": self.error_code,
            "err-msg": self.error_message,
        })
        if self.place_name is not None:
            d["place-name"] = self.place_name
        if self.distance_km is not None:
            d["range"] = self.distance_km
        if self.region is not None:
            d["region"] = self.region
        if self.country is not None:
            d["country"] = self.country
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "CoordinateBundle":
        try:
            return cls(
                latitude=float(d["lat"]),
                longitude=float(d["long"]),
                utc_offset=int(_value(d, "tz-off", 0)),
                error_code=int(_value(d, "err-code", 0)),
                error_message=str(_value(d, "err-msg", "")),
                place_name=d.get("place-name"),
                region=d.get("region"),
                country=d.get("country"),
                distance_km=d.get("range"),
                extra={k: v for k, v in d.items() if k not in _KNOWN_KEYS},
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise BundleDecodeError(f"not a coordinate bundle: {exc}") from exc

    def encode(self) -> str:
        return encode_component(self.to_dict())

    @classmethod
    def decode(cls, text: str) -> "CoordinateBundle":
        data = decode_component(text)
        if not isinstance(data, dict):
            raise BundleDecodeError("coordinate bundle must be a JSON object")
        return cls.from_dict(data)


def _value(d: dict[str, Any], key: str, default: Any) -> Any:
    """Missing and null both mean the default."""
    value = d.get(key)
    return default if value is None else value


def encode_component(data: Any) -> str:
    """JSON-serialise *data* and percent-encode it like encodeURIComponent."""
    return quote(json.dumps(data, ensure_ascii=False, separators=(",", ":")), safe=_URI_SAFE)


def decode_component(text: str) -> Any:
    try:
        return json.loads(unquote(text))
    except json.JSONDecodeError as exc:
        raise BundleDecodeError(f"payload is not JSON: {exc}") from exc
