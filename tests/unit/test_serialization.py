"""
Unit tests for the JSON encoder utilities.

Tests for:
- datetime and date serialization
- Decimal and enum serialization
- Non-ASCII output
"""

import json
from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from kolmigrate.models import TrackingStatus
from kolmigrate.serialization import DocumentJSONEncoder, json_dumps, json_loads


class TestDocumentJSONEncoder:
    """Tests for DocumentJSONEncoder."""

    def test_encode_datetime(self):
        """Test encoding datetime to ISO format string."""
        data = {"createdAt": datetime(2025, 3, 1, 10, 30, 45, tzinfo=UTC)}

        result = json.dumps(data, cls=DocumentJSONEncoder)

        assert json.loads(result) == {"createdAt": "2025-03-01T10:30:45+00:00"}

    def test_encode_date(self):
        """Test encoding date to ISO format string."""
        assert json.dumps(date(2025, 3, 1), cls=DocumentJSONEncoder) == '"2025-03-01"'

    def test_encode_decimal(self):
        """Test integral decimals become ints and others floats."""
        assert json.dumps(Decimal("8000000"), cls=DocumentJSONEncoder) == "8000000"
        assert json.dumps(Decimal("0.85"), cls=DocumentJSONEncoder) == "0.85"

    def test_encode_enum(self):
        """Test enum members are written as their value."""
        assert json.dumps(TrackingStatus.ARCHIVED, cls=DocumentJSONEncoder) == '"archived"'

    def test_unsupported_type(self):
        """Test unsupported types still raise TypeError."""
        with pytest.raises(TypeError):
            json.dumps({"value": object()}, cls=DocumentJSONEncoder)


class TestConvenienceFunctions:
    """Tests for json_dumps and json_loads."""

    def test_non_ascii_is_not_escaped(self):
        """Test Chinese labels are written as-is."""
        assert json_dumps({"status": "执行中"}) == '{"status": "执行中"}'

    def test_round_trip(self):
        """Test values survive dumps then loads."""
        data = {"name": "Spring Launch", "amount": 100000, "tags": ["a"]}
        assert json_loads(json_dumps(data)) == data
