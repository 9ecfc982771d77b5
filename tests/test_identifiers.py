"""
Tests for identifier and text utilities.

Tests:
- Id sanitization rules and idempotence
- XML escaping
- Token generation
- Per-compilation id allocation
"""

import re

import pytest

from bpmn_mapgen.core.identifiers import (
    MAX_ID_LENGTH,
    TOKEN_LENGTH,
    IDAllocator,
    escape_xml,
    new_unique_token,
    sanitize_id,
)


# ===========================
# sanitize_id
# ===========================


def test_sanitize_replaces_invalid_characters():
    assert sanitize_id("AP-001: Invoice Processing") == "AP-001__Invoice_Processing"


def test_sanitize_keeps_valid_characters():
    assert sanitize_id("Task_1-a") == "Task_1-a"


@pytest.mark.parametrize("name", ["1st step", "-dash", "9"])
def test_sanitize_forces_valid_first_character(name):
    result = sanitize_id(name)
    assert result[0] == "_"
    assert len(result) == len(name)


def test_sanitize_empty_and_none():
    assert sanitize_id("") == "_"
    assert sanitize_id(None) == "_"


def test_sanitize_truncates_to_max_length():
    result = sanitize_id("x" * 200)
    assert len(result) == MAX_ID_LENGTH


@pytest.mark.parametrize(
    "name",
    ["AP-001: Invoice Processing", "1 <b>&</b>", "", "ünïcödé näme", "a" * 80, "-"],
)
def test_sanitize_is_idempotent(name):
    once = sanitize_id(name)
    assert sanitize_id(once) == once


def test_sanitized_ids_are_ncnames():
    pattern = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
    for name in ["Three-Way Match", "$5,000 ≤ Invoice", "0", "<script>"]:
        assert pattern.match(sanitize_id(name))


# ===========================
# escape_xml
# ===========================


def test_escape_all_reserved_characters():
    assert escape_xml("""<a href="x">Tom & Jerry's</a>""") == (
        "&lt;a href=&quot;x&quot;&gt;Tom &amp; Jerry&apos;s&lt;/a&gt;"
    )


def test_escape_none_and_empty():
    assert escape_xml(None) == ""
    assert escape_xml("") == ""


def test_escape_plain_text_unchanged():
    assert escape_xml("Invoice Intake") == "Invoice Intake"


@pytest.mark.parametrize("text", ["&", "<", ">", '"', "'", "R&D <team>"])
def test_escape_is_not_idempotent_for_reserved_characters(text):
    # Escaping twice double-escapes; text must be escaped exactly once
    assert escape_xml(escape_xml(text)) != escape_xml(text)


# ===========================
# Tokens and allocation
# ===========================


def test_new_unique_token_format():
    token = new_unique_token()
    assert len(token) == TOKEN_LENGTH
    assert re.match(r"^[0-9a-f]+$", token)


def test_new_unique_token_differs_between_calls():
    tokens = {new_unique_token() for _ in range(50)}
    assert len(tokens) == 50


def test_allocator_appends_token():
    ids = IDAllocator("abcd1234")
    assert ids.allocate("gateway_approval") == "gateway_approval_abcd1234"


def test_allocator_sanitizes_prefix():
    ids = IDAllocator("abcd1234")
    assert ids.allocate("Collect ID") == "Collect_ID_abcd1234"


def test_allocator_disambiguates_collisions():
    ids = IDAllocator("abcd1234")
    first = ids.allocate("step")
    second = ids.allocate("step")
    third = ids.allocate("step")
    assert first == "step_abcd1234"
    assert second == "step_abcd1234_2"
    assert third == "step_abcd1234_3"


def test_allocator_respects_max_length():
    ids = IDAllocator("abcd1234")
    long_ids = [ids.allocate("y" * 100) for _ in range(3)]
    assert len(set(long_ids)) == 3
    assert all(len(i) <= MAX_ID_LENGTH for i in long_ids)
    assert long_ids[0].endswith("_abcd1234")


def test_allocator_reserve_blocks_id():
    ids = IDAllocator("abcd1234")
    ids.reserve("task_abcd1234")
    assert "task_abcd1234" in ids
    assert ids.allocate("task") != "task_abcd1234"


def test_allocators_are_independent():
    a = IDAllocator("tok")
    b = IDAllocator("tok")
    assert a.allocate("x") == b.allocate("x")
