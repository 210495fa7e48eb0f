"""Tests for alias resolution and canonical metadata records."""

from __future__ import annotations

from image_insight.io.normalizer import CanonicalMetadata, GpsInfo, normalize, resolve_first


def test_grouped_alias_wins_over_flat_alias():
    bag = {"Image": {"make": "Canon"}, "Make": "Nikon"}

    assert normalize(bag).make == "Canon"


def test_flat_alias_used_when_grouped_missing():
    assert normalize({"Make": "Nikon", "Model": "Z6"}).as_dict() == {"make": "Nikon", "model": "Z6"}


def test_width_falls_back_to_exif_pixel_dimension():
    bag = {"Exif": {"pixelxdimension": 4000, "pixelydimension": 3000}}

    metadata = normalize(bag)

    assert metadata.image_width == 4000
    assert metadata.image_height == 3000


def test_color_space_prefers_exif_group():
    bag = {"Exif": {"colorspace": 1}, "Image": {"colorspace": 65535}}

    assert normalize(bag).color_space == 1
    assert normalize({"Image": {"colorspace": 65535}}).color_space == 65535


def test_falsy_values_are_kept():
    payload = normalize({"Flash": 0, "Orientation": 1}).as_dict()

    assert payload == {"flash": 0, "orientation": 1}


def test_gps_is_omitted_when_empty():
    metadata = normalize({"Make": "Canon"})

    assert metadata.gps is None
    assert "gps" not in metadata.as_dict()


def test_gps_keeps_only_resolved_fields():
    bag = {"GPS": {"latitude": -33.8666667, "latituderef": "S"}}

    payload = normalize(bag).as_dict()

    assert payload == {"gps": {"latitude": -33.8666667, "latitudeRef": "S"}}


def test_empty_bag_has_no_exif():
    metadata = normalize({})

    assert metadata.has_exif is False
    assert metadata.as_dict() == {}


def test_normalize_is_idempotent():
    bag = {
        "Image": {"make": "Canon", "imagewidth": 6000, "imagelength": 4000},
        "Exif": {"isospeedratings": 400, "fnumber": 2.8, "colorspace": 1},
        "GPS": {"latitude": 51.5, "longitude": -0.12, "altitude": 12.0, "longituderef": "W"},
        "Copyright": "ACME",
    }

    first = normalize(bag).as_dict()
    second = normalize(first).as_dict()

    assert second == first
    assert first["iso"] == 400
    assert first["gps"]["longitudeRef"] == "W"


def test_resolve_first_walks_aliases_in_order():
    bag = {"Exif": {"iso": None}, "ISO": 800}

    assert resolve_first(bag, (("Exif", "isospeedratings"), ("Exif", "iso"), "ISO")) == 800
    assert resolve_first(bag, ("missing", ("Exif", "nothing"))) is None


def test_gps_info_is_empty():
    assert GpsInfo().is_empty()
    assert not GpsInfo(altitude=0).is_empty()
    assert CanonicalMetadata(gps=GpsInfo()).as_dict() == {}
