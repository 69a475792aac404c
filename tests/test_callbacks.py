from __future__ import annotations

import pytest

from respmux.exceptions import ReplyTypeError
from respmux.response.callbacks import (
    AnyStrCallback,
    BoolCallback,
    DictCallback,
    NoopCallback,
    OptionalAnyStrListCallback,
    OptionalFloatCallback,
    SimpleStringCallback,
    ZRangeCallback,
)
from respmux.response.types import (
    NULL_ARRAY,
    NULL_BULK_STRING,
    Array,
    BulkString,
    Integer,
    SimpleString,
)


def strings(*values):
    return Array(tuple(BulkString(v) for v in values))


class TestCallbacks:
    def test_noop(self):
        assert NoopCallback()(Integer(1)) == Integer(1)

    def test_simple_string(self):
        assert SimpleStringCallback()(SimpleString(b"OK")) is True
        assert SimpleStringCallback()(SimpleString(b"QUEUED")) is False
        assert SimpleStringCallback()(NULL_BULK_STRING) is False
        with pytest.raises(ReplyTypeError):
            SimpleStringCallback()(Integer(1))

    def test_bool(self):
        assert BoolCallback()(Integer(1)) is True
        assert BoolCallback()(Integer(0)) is False

    def test_any_str(self):
        assert AnyStrCallback()(BulkString(b"v")) == b"v"
        assert AnyStrCallback()(BulkString(b"v"), "utf-8") == "v"
        assert AnyStrCallback()(SimpleString(b"v"), "utf-8") == "v"
        with pytest.raises(ReplyTypeError):
            AnyStrCallback()(NULL_BULK_STRING)

    def test_optional_list(self):
        reply = Array((BulkString(b"a"), NULL_BULK_STRING))
        assert OptionalAnyStrListCallback()(reply, "utf-8") == ["a", None]
        with pytest.raises(ReplyTypeError):
            OptionalAnyStrListCallback()(NULL_ARRAY)

    def test_float(self):
        assert OptionalFloatCallback()(BulkString(b"1.5")) == 1.5
        assert OptionalFloatCallback()(NULL_BULK_STRING) is None

    def test_dict(self):
        assert DictCallback()(strings(b"a", b"1", b"b", b"2")) == {b"a": b"1", b"b": b"2"}
        with pytest.raises(ReplyTypeError):
            DictCallback()(strings(b"a"))

    def test_zrange(self):
        reply = strings(b"a", b"1", b"b", b"2.5")
        assert ZRangeCallback()(reply) == [b"a", b"1", b"b", b"2.5"]
        assert ZRangeCallback(withscores=True)(reply, "utf-8") == [("a", 1.0), ("b", 2.5)]
        with pytest.raises(ReplyTypeError):
            ZRangeCallback(withscores=True)(strings(b"a"))

    def test_wrong_variant(self):
        with pytest.raises(ReplyTypeError):
            DictCallback()(Integer(1))
