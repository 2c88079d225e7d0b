"""Tests for AI response parsing and schema validation"""

import copy
import json
import logging

import pytest

from invoice_auditor.models.audit import (
    DiscrepancyType,
    LineItemStatus,
    OverallStatus,
    Severity,
)
from invoice_auditor.services.errors import ResultParseError
from invoice_auditor.services.parser import parse_audit_result, strip_code_fence

from tests.conftest import DISCREPANCY_RESULT, MATCH_RESULT


def _with(path, value, base=MATCH_RESULT):
    """Copy of base with a nested key replaced (value=KeyError deletes it)."""
    data = copy.deepcopy(base)
    target = data
    for key in path[:-1]:
        target = target[key]
    if value is KeyError:
        del target[path[-1]]
    else:
        target[path[-1]] = value
    return json.dumps(data)


class TestStripCodeFence:

    def test_unfenced_text_unchanged(self):
        assert strip_code_fence('{"a": 1}') == '{"a": 1}'

    def test_fence_with_language_tag(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_without_language_tag(self):
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_on_single_line(self):
        assert strip_code_fence('```{"a": 1}```') == '{"a": 1}'

    def test_surrounding_whitespace(self):
        assert strip_code_fence('\n\n  ```json\n{"a": 1}\n```  \n') == '{"a": 1}'

    def test_only_one_fence_removed(self):
        inner = '```\n{"a": 1}\n```'
        assert strip_code_fence(f"```markdown\n{inner}\n```") == inner

    def test_unclosed_fence(self):
        assert strip_code_fence('```json\n{"a": 1}') == '{"a": 1}'


class TestParseAuditResult:

    def test_match_result(self):
        result = parse_audit_result(json.dumps(MATCH_RESULT))
        assert result.summary.overall_status == OverallStatus.MATCH
        assert result.summary.total_invoiced == 1000
        assert result.summary.currency == "EUR"
        assert result.discrepancies == []
        assert result.extracted_contract_terms.visit_fees == []

    def test_full_result(self):
        result = parse_audit_result(json.dumps(DISCREPANCY_RESULT))
        assert result.summary.invoice_number == "INV-2024-017"
        assert result.summary.currency is None
        assert [i.status for i in result.line_items] == [
            LineItemStatus.PRICE_MISMATCH,
            LineItemStatus.MATCH,
            LineItemStatus.NOT_IN_CONTRACT,
            LineItemStatus.MISSING_FROM_INVOICE,
        ]
        assert result.line_items[3].invoice_total is None
        assert result.discrepancies[1].type == DiscrepancyType.UNAUTHORIZED_CHARGE
        assert len(result.discrepancies_by_severity(Severity.MEDIUM)) == 1
        assert result.recommendations[0].startswith("Request a credit note")
        assert result.extracted_contract_terms.startup_fee == 5000.0

    def test_fenced_json_parses(self):
        text = f"```json\n{json.dumps(MATCH_RESULT, indent=2)}\n```"
        assert parse_audit_result(text).summary.confidence_score == 0.95

    def test_round_trip(self):
        original = parse_audit_result(json.dumps(DISCREPANCY_RESULT))
        assert parse_audit_result(original.model_dump_json()) == original

    @pytest.mark.parametrize("text", [
        "The invoice matches the contract.",
        "",
        "```\n```",
        "{\"summary\": ",
        "[]",
        "null",
    ])
    def test_not_json(self, text):
        with pytest.raises(ResultParseError) as exc:
            parse_audit_result(text)
        assert exc.value.message == "Failed to parse AI response as JSON"

    @pytest.mark.parametrize("path, value", [
        (("summary",), KeyError),
        (("summary", "total_invoiced"), KeyError),
        (("summary", "overall_status"), "mostly_fine"),
        (("summary", "confidence_score"), 1.5),
        (("summary", "total_invoiced"), "1000"),
        (("summary", "total_contracted"), None),
        (("summary", "currency"), "EURO"),
        (("discrepancies",), [{"type": "typo", "severity": "high", "description": "x"}]),
        (("discrepancies",), [{"type": "other", "severity": "critical", "description": "x"}]),
        (("line_items",), [{"description": "Visit", "status": "match"}]),
        (("recommendations",), [1, 2]),
        (("extracted_contract_terms", "currency"), KeyError),
    ])
    def test_schema_violations(self, path, value):
        with pytest.raises(ResultParseError):
            parse_audit_result(_with(path, value))

    def test_error_keeps_bounded_snippet(self):
        text = "x" * 5000
        with pytest.raises(ResultParseError) as exc:
            parse_audit_result(text)
        assert exc.value.text_length == 5000
        assert len(exc.value.snippet) == 200

    def test_inconsistent_difference_is_kept_and_logged(self, caplog):
        text = _with(("summary", "total_difference"), 42)
        with caplog.at_level(logging.WARNING, logger="invoice_auditor.services.parser"):
            result = parse_audit_result(text)
        assert result.summary.total_difference == 42
        assert "total_difference" in caplog.text
