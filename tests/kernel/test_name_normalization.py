"""Tests for settlement_kernel.domain.naming."""

import pytest

from settlement_kernel.domain.naming import (
    NO_AGENT_BUCKET,
    UNASSIGNED_SUBCLUB,
    agent_bucket,
    is_blank_reference,
    norm_name,
    subclub_bucket,
)


class TestNormName:
    def test_strips_accents_and_case(self):
        assert norm_name("João Açaí") == "joao acai"

    def test_none_is_empty(self):
        assert norm_name(None) == ""


class TestBuckets:
    @pytest.mark.parametrize("raw", [None, "", "  ", "0", "none", "NULL", "Undefined"])
    def test_blank_references(self, raw):
        assert is_blank_reference(raw)
        assert agent_bucket(raw) == NO_AGENT_BUCKET
        assert subclub_bucket(raw) == UNASSIGNED_SUBCLUB

    def test_question_mark_subclub_is_unassigned(self):
        assert subclub_bucket("?") == UNASSIGNED_SUBCLUB

    def test_named_values_are_trimmed(self):
        assert agent_bucket("  AG Alpha ") == "AG Alpha"
        assert subclub_bucket(" IMPERIO ") == "IMPERIO"
