"""Unit tests for parameter handling."""

from __future__ import annotations

import pytest

from laju_db.core.exceptions import ParameterBindingError
from laju_db.core.params import (
    bind_params,
    coerce_params,
    has_positional_placeholders,
    normalize_params,
)


class TestNormalizeParams:
    def test_named_passthrough(self) -> None:
        sql = "SELECT * FROM users WHERE id = :user_id"
        assert normalize_params(sql, "named") == sql

    def test_pyformat_conversion(self) -> None:
        sql = "SELECT * FROM users WHERE id = :user_id"
        expected = "SELECT * FROM users WHERE id = %(user_id)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_multiple_params(self) -> None:
        sql = "SELECT * FROM users WHERE id = :id AND name = :name"
        expected = "SELECT * FROM users WHERE id = %(id)s AND name = %(name)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_typecast_exclusion(self) -> None:
        sql = "SELECT value::integer FROM t WHERE id = :id"
        expected = "SELECT value::integer FROM t WHERE id = %(id)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_string_literal_exclusion(self) -> None:
        sql = "SELECT * FROM t WHERE col = ':not_a_param' AND id = :id"
        expected = "SELECT * FROM t WHERE col = ':not_a_param' AND id = %(id)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_no_params(self) -> None:
        sql = "SELECT 1"
        assert normalize_params(sql, "pyformat") == sql


class TestCoerceParams:
    def test_none_and_dict_pass_through(self) -> None:
        assert coerce_params(None) is None
        params = {"id": 1}
        assert coerce_params(params) is params

    def test_list_becomes_tuple(self) -> None:
        assert coerce_params([1, 2]) == (1, 2)

    def test_scalar_is_wrapped(self) -> None:
        assert coerce_params(7) == (7,)


class TestBindParams:
    def test_sequence_binds_positionally(self) -> None:
        assert bind_params("SELECT ? , ?", [1, "a"]) == (1, "a")

    def test_none_means_no_params(self) -> None:
        assert bind_params("SELECT 1", None) == ()

    def test_scalar_and_string_are_single_values(self) -> None:
        assert bind_params("SELECT ?", 5) == (5,)
        assert bind_params("SELECT ?", "abc") == ("abc",)

    def test_mapping_binds_by_name(self) -> None:
        sql = "SELECT * FROM t WHERE a = :a AND b = :b"
        # Key order differs from placeholder order; binding stays by name
        assert bind_params(sql, {"b": 2, "a": 1}) == {"a": 1, "b": 2}

    def test_mapping_with_question_marks_is_rejected(self) -> None:
        with pytest.raises(ParameterBindingError, match="placeholders"):
            bind_params("SELECT * FROM t WHERE a = ? AND b = ?", {"a": 1, "b": 2})

    def test_question_mark_inside_literal_is_not_a_placeholder(self) -> None:
        sql = "SELECT * FROM t WHERE note = 'why?' AND id = :id"
        assert not has_positional_placeholders(sql)
        assert bind_params(sql, {"id": 1}) == {"id": 1}
