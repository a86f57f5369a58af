"""
Tests: Result envelope, error codes, rating scales and form helpers.
"""

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from maap.core.result import Err, ErrorKind, Ok, err_from_exception
from maap.models.ratings import coerce_position_rating, is_valid_rating, rating_label, rating_rank
from maap.utils.errors import E, error_payload, status_for
from maap.utils.helpers import (
    is_blank,
    is_truthy_flag,
    parse_date,
    parse_optional_int,
    parse_whole_number,
)


class TestResult:

    def test_ok_unwraps(self):
        result = Ok({"a": 1})
        assert result.ok
        assert result.unwrap() == {"a": 1}

    def test_err_unwrap_raises(self):
        with pytest.raises(ValueError):
            Err(ErrorKind.NOT_READY, "nope").unwrap()

    @pytest.mark.parametrize("kind, code, status", [
        (ErrorKind.NOT_READY, E.CONFLICT_STATE, 409),
        (ErrorKind.RATING_REQUIRED, E.VALIDATION_REQUIRED, 400),
        (ErrorKind.INVALID_RATING, E.VALIDATION_INVALID, 400),
        (ErrorKind.NO_ACTIVE_TENURE, E.NOT_FOUND, 404),
        (ErrorKind.UNEXPECTED, E.INTERNAL, 500),
    ])
    def test_kind_maps_to_code_and_status(self, kind, code, status):
        err = Err(kind, "message")
        body, http_status = err.to_payload()

        assert err.error_code == code
        assert http_status == status
        assert body["code"] == code
        assert body["details"]["kind"] == kind.value

    def test_only_user_input_kinds_are_recoverable(self):
        assert Err(ErrorKind.INVALID_RATING, "x").recoverable
        assert not Err(ErrorKind.NO_ACTIVE_TENURE, "x").recoverable
        assert not Err(ErrorKind.UNEXPECTED, "x").recoverable

    def test_explicit_code_overrides_kind(self):
        err = Err(ErrorKind.UNEXPECTED, "db down", code=E.DATABASE)
        assert err.error_code == E.DATABASE
        assert status_for(E.DATABASE) == 500

    def test_database_exceptions_get_database_code(self):
        err = err_from_exception(IntegrityError("INSERT", {}, Exception("duplicate key")))
        assert err.kind == ErrorKind.UNEXPECTED
        assert err.error_code == E.DATABASE

        assert err_from_exception(RuntimeError("boom")).error_code == E.INTERNAL

    def test_error_payload_shape(self):
        body, status = error_payload(E.NOT_FOUND, "missing", details={"id": 3})
        assert status == 404
        assert body == {"error": "missing", "code": E.NOT_FOUND, "details": {"id": 3}}


class TestRatings:

    @pytest.mark.parametrize("value, expected", [
        (2, 2), ("-3", -3), (" 1 ", 1), (True, None), ("two", None), (None, None),
    ])
    def test_coerce_position_rating(self, value, expected):
        assert coerce_position_rating(value) == expected

    def test_scales(self):
        assert is_valid_rating("assignment", "meeting")
        assert not is_valid_rating("assignment", 1)
        assert is_valid_rating("position", "3")
        assert not is_valid_rating("position", 4)
        assert rating_rank("aspiration", "exceeding") > rating_rank("aspiration", "working_to_meet")
        assert rating_rank("position", "x") is None

    def test_labels(self):
        assert rating_label("working_to_meet") == "Working to Meet"
        assert rating_label(None) == "Not Rated"
        assert rating_label(2) == "2"


class TestHelpers:

    @pytest.mark.parametrize("value, expected", [
        (None, None), ("", None), ("  ", None), ("45", 45), (45, 45), ("4.5", None), (False, None),
    ])
    def test_parse_optional_int(self, value, expected):
        assert parse_optional_int(value) == expected

    @pytest.mark.parametrize("value, expected", [
        (None, None), ("", None), (60, 60), (60.0, 60), ("60.0", 60), (" 7 ", 7),
    ])
    def test_parse_whole_number(self, value, expected):
        assert parse_whole_number(value) == expected

    @pytest.mark.parametrize("value", ["60%", 12.5, "12.5", True, "abc", float("nan")])
    def test_parse_whole_number_rejects(self, value):
        with pytest.raises(ValueError):
            parse_whole_number(value)

    @pytest.mark.parametrize("value, expected", [
        (True, True), ("1", True), ("true", True), ("TRUE", True),
        ("0", False), ("false", False), (None, False), ("", False), (False, False),
    ])
    def test_is_truthy_flag(self, value, expected):
        assert is_truthy_flag(value) is expected

    def test_parse_date(self):
        assert parse_date("2024-03-05") == date(2024, 3, 5)
        assert parse_date("05.03.2024") == date(2024, 3, 5)
        assert parse_date("garbage") is None
        assert parse_date(None) is None

    def test_is_blank(self):
        assert is_blank(None)
        assert is_blank(" ")
        assert not is_blank(0)
        assert not is_blank("meeting")
