"""Map heterogeneous metadata tag bags onto a canonical record.

Tag readers disagree on naming: some expose grouped keys (``{"Image": {"make": ...}}``),
others flat human-readable ones (``{"Make": ...}``). Every canonical field carries an
ordered alias list; the first alias holding a value wins and later aliases are only
fallbacks. The canonical key itself is always the last alias, which makes an
already-normalised record a fixed point of :func:`normalize`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Union

Alias = Union[str, tuple[str, ...]]
MetadataTagBag = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Canonical output key plus the aliases consulted to populate it."""

    key: str
    aliases: tuple[Alias, ...]


_FIELD_SPECS: dict[str, FieldSpec] = {
    "image_width": FieldSpec(
        "imageWidth",
        (("Image", "imagewidth"), ("Exif", "pixelxdimension"), "Image Width", "imageWidth"),
    ),
    "image_height": FieldSpec(
        "imageHeight",
        (("Image", "imagelength"), ("Exif", "pixelydimension"), "Image Height", "imageHeight"),
    ),
    "make": FieldSpec("make", (("Image", "make"), "Make", "make")),
    "model": FieldSpec("model", (("Image", "model"), "Model", "model")),
    "software": FieldSpec("software", (("Image", "software"), "Software", "software")),
    "date_time": FieldSpec("dateTime", (("Image", "datetime"), "DateTime", "dateTime")),
    "date_time_original": FieldSpec(
        "dateTimeOriginal",
        (("Exif", "datetimeoriginal"), "DateTimeOriginal", "dateTimeOriginal"),
    ),
    "date_time_digitized": FieldSpec(
        "dateTimeDigitized",
        (("Exif", "datetimedigitized"), "DateTimeDigitized", "dateTimeDigitized"),
    ),
    "f_number": FieldSpec("fNumber", (("Exif", "fnumber"), "FNumber", "fNumber")),
    "exposure_time": FieldSpec(
        "exposureTime", (("Exif", "exposuretime"), "ExposureTime", "exposureTime")
    ),
    "iso": FieldSpec("iso", (("Exif", "isospeedratings"), ("Exif", "iso"), "ISO", "iso")),
    "focal_length": FieldSpec(
        "focalLength", (("Exif", "focallength"), "FocalLength", "focalLength")
    ),
    "flash": FieldSpec("flash", (("Exif", "flash"), "Flash", "flash")),
    "white_balance": FieldSpec(
        "whiteBalance", (("Exif", "whitebalance"), "WhiteBalance", "whiteBalance")
    ),
    "orientation": FieldSpec(
        "orientation", (("Image", "orientation"), "Orientation", "orientation")
    ),
    "color_space": FieldSpec(
        "colorSpace",
        (("Exif", "colorspace"), ("Image", "colorspace"), "ColorSpace", "colorSpace"),
    ),
    "x_resolution": FieldSpec(
        "xResolution", (("Image", "xresolution"), "X Resolution", "xResolution")
    ),
    "y_resolution": FieldSpec(
        "yResolution", (("Image", "yresolution"), "Y Resolution", "yResolution")
    ),
    "resolution_unit": FieldSpec(
        "resolutionUnit", (("Image", "resolutionunit"), "Resolution Unit", "resolutionUnit")
    ),
    "artist": FieldSpec("artist", (("Image", "artist"), "Artist", "artist")),
    "copyright": FieldSpec("copyright", (("Image", "copyright"), "Copyright", "copyright")),
    "image_description": FieldSpec(
        "imageDescription",
        (("Image", "imagedescription"), "Image Description", "imageDescription"),
    ),
}

_GPS_KEY = "gps"

_GPS_SPECS: dict[str, FieldSpec] = {
    "latitude": FieldSpec("latitude", (("GPS", "latitude"), "GPS Latitude", (_GPS_KEY, "latitude"))),
    "longitude": FieldSpec(
        "longitude", (("GPS", "longitude"), "GPS Longitude", (_GPS_KEY, "longitude"))
    ),
    "altitude": FieldSpec("altitude", (("GPS", "altitude"), "GPS Altitude", (_GPS_KEY, "altitude"))),
    "latitude_ref": FieldSpec(
        "latitudeRef", (("GPS", "latituderef"), "GPS LatitudeRef", (_GPS_KEY, "latitudeRef"))
    ),
    "longitude_ref": FieldSpec(
        "longitudeRef", (("GPS", "longituderef"), "GPS LongitudeRef", (_GPS_KEY, "longitudeRef"))
    ),
    "altitude_ref": FieldSpec(
        "altitudeRef", (("GPS", "altituderef"), "GPS AltitudeRef", (_GPS_KEY, "altitudeRef"))
    ),
}


@dataclass(frozen=True, slots=True)
class GpsInfo:
    latitude: Any = None
    longitude: Any = None
    altitude: Any = None
    latitude_ref: Any = None
    longitude_ref: Any = None
    altitude_ref: Any = None

    def is_empty(self) -> bool:
        return all(getattr(self, item.name) is None for item in fields(self))

    def as_dict(self) -> dict[str, Any]:
        return _pruned(self, _GPS_SPECS)


@dataclass(frozen=True, slots=True)
class CanonicalMetadata:
    """Camera and descriptive metadata under stable names.

    Every field is optional. ``as_dict`` omits unresolved fields entirely and leaves
    out ``gps`` when none of its sub-fields resolved.
    """

    has_exif: bool = False
    image_width: Any = None
    image_height: Any = None
    make: Any = None
    model: Any = None
    software: Any = None
    date_time: Any = None
    date_time_original: Any = None
    date_time_digitized: Any = None
    f_number: Any = None
    exposure_time: Any = None
    iso: Any = None
    focal_length: Any = None
    flash: Any = None
    white_balance: Any = None
    gps: GpsInfo | None = None
    orientation: Any = None
    color_space: Any = None
    x_resolution: Any = None
    y_resolution: Any = None
    resolution_unit: Any = None
    artist: Any = None
    copyright: Any = None
    image_description: Any = None

    def as_dict(self) -> dict[str, Any]:
        payload = _pruned(self, _FIELD_SPECS)
        if self.gps is not None:
            gps_payload = self.gps.as_dict()
            if gps_payload:
                payload[_GPS_KEY] = gps_payload
        return payload


def normalize(tag_bag: MetadataTagBag) -> CanonicalMetadata:
    """Resolve every canonical field of ``tag_bag`` through its alias list."""
    values = {name: resolve_first(tag_bag, spec.aliases) for name, spec in _FIELD_SPECS.items()}
    gps = GpsInfo(**{name: resolve_first(tag_bag, spec.aliases) for name, spec in _GPS_SPECS.items()})
    return CanonicalMetadata(
        has_exif=bool(tag_bag),
        gps=None if gps.is_empty() else gps,
        **values,
    )


def resolve_first(tag_bag: MetadataTagBag, aliases: tuple[Alias, ...]) -> Any:
    """Return the value of the first alias present in ``tag_bag``; ``None`` otherwise."""
    for alias in aliases:
        value = _lookup(tag_bag, alias)
        if value is not None:
            return value
    return None


def _lookup(tag_bag: MetadataTagBag, alias: Alias) -> Any:
    if isinstance(alias, str):
        return tag_bag.get(alias)
    node: Any = tag_bag
    for part in alias:
        if not isinstance(node, Mapping):
            return None
        node = node.get(part)
    return node


def _pruned(record: object, specs: Mapping[str, FieldSpec]) -> dict[str, Any]:
    populated = {spec.key: getattr(record, name) for name, spec in specs.items()}
    return {key: value for key, value in populated.items() if value is not None}
