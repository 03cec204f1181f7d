from civic_scrapers.extract.coordinates import coerce_coordinates, first_lat_lng, parse_marker_payload


def test_parse_marker_payload_json():
    coords, address = parse_marker_payload('[59.9127, 10.7461, "Karl Johans gate 1,  0154 Oslo"]')
    assert coords == (59.9127, 10.7461)
    assert address == "Karl Johans gate 1, 0154 Oslo"


def test_parse_marker_payload_single_quotes_fallback():
    coords, address = parse_marker_payload("[58.2701, 7.9713, 'Hunsøya 2, 4700 Vennesla']")
    assert coords == (58.2701, 7.9713)
    assert address == "Hunsøya 2, 4700 Vennesla"


def test_parse_marker_payload_string_numbers_and_short_arrays():
    assert parse_marker_payload('["60.39", "5.32abc"]') == ((60.39, 5.32), None)
    assert parse_marker_payload("[60.39]") == (None, None)
    assert parse_marker_payload('[null, 5.3, "Bryggen 1"]') == (None, "Bryggen 1")


def test_parse_marker_payload_rejects_garbage():
    assert parse_marker_payload(None) == (None, None)
    assert parse_marker_payload("   ") == (None, None)
    assert parse_marker_payload("{not json") == (None, None)
    assert parse_marker_payload('{"lat": 1, "lng": 2}') == (None, None)


def test_coerce_coordinates_requires_finite_numbers():
    assert coerce_coordinates(1, 2) == (1.0, 2.0)
    assert coerce_coordinates("NaN", 2) is None
    assert coerce_coordinates(True, 2) is None
    assert coerce_coordinates("abc", 2) is None
    # out-of-range values pass through unchanged
    assert coerce_coordinates(123.5, 500) == (123.5, 500.0)


def test_first_lat_lng_matches_decimal_pairs_only():
    assert first_lat_lng("Kart: 58.46123, 8.77245 og mer") == (58.46123, 8.77245)
    assert first_lat_lng("Tlf 12.34, 56.78") is None
    assert first_lat_lng("") is None
    assert first_lat_lng(None) is None


def test_oversized_marker_numbers_degrade_to_none():
    raw = "[" + "9" * 400 + ', 7.5, "Storgata 1, 4600 Kristiansand"]'
    assert parse_marker_payload(raw) == (None, "Storgata 1, 4600 Kristiansand")
    assert coerce_coordinates(10**400, 7.5) is None
