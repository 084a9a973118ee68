"""Unit tests for ``${KEY}`` substitution."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from env_resolver.resolution.interpolation import interpolate, interpolate_value


@pytest.mark.unit
def test_references_are_substituted() -> None:
    env = {"HOST": "db", "PORT": "5432", "URL": "postgres://${HOST}:${PORT}/app"}
    assert interpolate(env)["URL"] == "postgres://db:5432/app"


@pytest.mark.unit
def test_chains_resolve_regardless_of_key_order() -> None:
    env = {"C": "${B}/c", "B": "${A}/b", "A": "root"}
    assert interpolate(env) == {"A": "root", "B": "root/b", "C": "root/b/c"}


@pytest.mark.unit
def test_unknown_and_empty_references_stay_literal() -> None:
    env = {"EMPTY": "", "A": "${MISSING}-${EMPTY}"}
    assert interpolate(env)["A"] == "${MISSING}-${EMPTY}"


@pytest.mark.unit
def test_cycles_terminate() -> None:
    env = {"A": "${B}", "B": "${A}"}
    result = interpolate(env, max_depth=4)
    assert set(result) == {"A", "B"}
    assert all("${" in value for value in result.values())


@pytest.mark.unit
def test_self_reference_grows_only_up_to_depth() -> None:
    result = interpolate({"A": "x${A}"}, max_depth=3)
    assert result["A"] == "xxxx${A}"


@pytest.mark.unit
def test_input_is_not_mutated() -> None:
    env = {"A": "1", "B": "${A}"}
    interpolate(env)
    assert env["B"] == "${A}"


@pytest.mark.unit
def test_whitespace_inside_braces_is_ignored() -> None:
    assert interpolate_value("${ HOST }", {"HOST": "db"}) == "db"


@pytest.mark.unit
def test_max_depth_must_be_positive() -> None:
    with pytest.raises(ValueError):
        interpolate({}, max_depth=0)


@pytest.mark.unit
@given(
    env=st.dictionaries(
        st.from_regex(r"[A-Z][A-Z0-9_]{0,6}", fullmatch=True),
        st.text(alphabet=st.characters(exclude_characters="$"), max_size=12),
        max_size=6,
    )
)
@settings(max_examples=50, derandomize=True, deadline=None)
def test_property_values_without_references_are_unchanged(env: dict[str, str]) -> None:
    assert interpolate(env) == env
