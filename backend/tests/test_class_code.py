"""Tests for class-code validation and the code lookup function."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from planner.errors import Conflict, RpcError
from planner.services import class_service
from planner.services.class_code import NOT_FOUND, validate_class_code

from conftest import make_class


class RecordingLookup:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, code):
        self.calls.append(code)
        if self.error:
            raise self.error
        return self.result


class TestValidateClassCode:
    def test_lowercase_input_is_normalised(self):
        lookup = RecordingLookup([{"class_id": "c-1", "code": "3HT1"}])
        result = validate_class_code(" 3ht1 ", lookup)
        assert result.valid
        assert result.class_id == "c-1"
        assert lookup.calls == ["3HT1"]

    def test_empty(self):
        lookup = RecordingLookup([])
        result = validate_class_code("   ", lookup)
        assert not result.valid
        assert result.error == "Please enter your class code."
        assert lookup.calls == []

    @pytest.mark.parametrize("code", ["HT31", "3H1", "123HT1", "3HTXX1", "3HT123"])
    def test_bad_format_skips_lookup(self, code):
        lookup = RecordingLookup([{"class_id": "c-1"}])
        result = validate_class_code(code, lookup)
        assert not result.valid
        assert result.error == "Invalid class code format. Example: 1HAT2"
        assert lookup.calls == []

    def test_no_rows(self):
        result = validate_class_code("1HAT2", RecordingLookup([]))
        assert result == result.__class__(valid=False, error=NOT_FOUND)

    def test_row_with_only_id(self):
        result = validate_class_code("1HAT2", RecordingLookup([{"id": "c-9"}]))
        assert result.valid
        assert result.class_id == "c-9"

    def test_single_mapping(self):
        result = validate_class_code("1HAT2", RecordingLookup({"class_id": "c-2"}))
        assert result.class_id == "c-2"

    def test_unexpected_shape(self):
        result = validate_class_code("1HAT2", RecordingLookup("c-2"))
        assert not result.valid
        assert result.error == NOT_FOUND

    def test_no_rows_rpc_code(self):
        lookup = RecordingLookup(error=RpcError("no rows", code="PGRST116"))
        assert validate_class_code("1HAT2", lookup).error == NOT_FOUND

    def test_not_acceptable_status(self):
        lookup = RecordingLookup(error=RpcError("nope", status=406))
        assert validate_class_code("1HAT2", lookup).error == NOT_FOUND

    def test_other_rpc_error(self):
        lookup = RecordingLookup(error=RpcError("connection reset", code="08006", status=500))
        assert validate_class_code("1HAT2", lookup).error == "Server error: connection reset"

    def test_unexpected_exception(self):
        lookup = RecordingLookup(error=RuntimeError("boom"))
        assert validate_class_code("1HAT2", lookup).error == "Unexpected error: boom"


class TestClassService:
    def test_lookup_returns_rows(self, db):
        cls = make_class(db, "3HT1")
        rows = class_service.get_class_by_code(db, "3ht1")
        assert rows == [{"id": cls.id, "class_id": cls.id, "code": "3HT1", "name": "3HT1"}]

    def test_lookup_unknown_code(self, db):
        assert class_service.get_class_by_code(db, "9ZZ9") == []

    def test_validate_against_database(self, db):
        cls = make_class(db, "3HT1")
        lookup = lambda code: class_service.get_class_by_code(db, code)
        assert validate_class_code("3ht1", lookup).class_id == cls.id
        assert validate_class_code("4HT1", lookup).error == NOT_FOUND

    def test_create_rejects_bad_format(self, db):
        with pytest.raises(ValueError):
            class_service.create_class(db, "class-a")

    def test_create_rejects_duplicate(self, db):
        class_service.create_class(db, "2AB3")
        with pytest.raises(Conflict):
            class_service.create_class(db, "2ab3")
