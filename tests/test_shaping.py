import pytest

from siteproof.shaping import (
    COMPLIANCE_DEFAULTS,
    SCHEDULE_DEFAULTS,
    WEATHER_DECISION_DEFAULTS,
    ComplianceAnalysisResult,
    extract_json,
    merge_defaults,
    parse_or_default,
)


class TestExtractJson:
    def test_embedded_object(self):
        assert extract_json('Here you go:\n```json\n{"a": 1}\n```\nThanks') == {"a": 1}

    def test_greedy_span(self):
        text = 'first {"a": {"b": 2}} trailing'
        assert extract_json(text) == {"a": {"b": 2}}

    def test_array_when_no_object(self):
        assert extract_json("list: [1, 2, 3]") == [1, 2, 3]

    @pytest.mark.parametrize(
        "text",
        [
            None,
            "",
            "no json here",
            "{not json}",
            '{"a": 1,}',
            "} backwards {",
            '{"a": 1} and {"b": 2}',
            "{'single': 'quotes'}",
        ],
    )
    def test_malformed_inputs_return_none(self, text):
        assert extract_json(text) is None


class TestParseOrDefault:
    def test_valid_json_fields_equal_parsed_values(self):
        answer = """Analysis complete.
        {
          "compliance_status": "NON_COMPLIANT",
          "risk_level": "HIGH",
          "issues": [{"category": "Earthworks", "severity": "CRITICAL", "description": "Low density"}],
          "financial_impact": {"estimated_remediation_cost": 12000, "potential_penalties": 0,
                               "delay_costs": 3000, "total_risk": 15000},
          "timeline_impact": {"estimated_delay_days": 7, "critical_path_affected": true,
                              "weather_risk_days": 2},
          "recommendations": [{"priority": "HIGH", "action": "Re-compact"}],
          "summary": "Fails AS 3798."
        }"""
        shaped, parsed = parse_or_default(answer, COMPLIANCE_DEFAULTS, text_field="summary")

        assert parsed is True
        assert shaped["compliance_status"] == "NON_COMPLIANT"
        assert shaped["risk_level"] == "HIGH"
        assert shaped["issues"][0]["description"] == "Low density"
        assert shaped["financial_impact"]["total_risk"] == 15000
        assert shaped["timeline_impact"]["critical_path_affected"] is True
        assert shaped["recommendations"] == [{"priority": "HIGH", "action": "Re-compact"}]
        assert shaped["summary"] == "Fails AS 3798."

    def test_no_json_gives_every_default(self):
        shaped, parsed = parse_or_default("I could not decide.", COMPLIANCE_DEFAULTS, text_field="summary")

        assert parsed is False
        assert shaped == {**COMPLIANCE_DEFAULTS, "summary": "I could not decide."}

    def test_weather_and_schedule_defaults(self):
        weather, _ = parse_or_default("nothing", WEATHER_DECISION_DEFAULTS)
        assert weather["decision"] == "proceed_with_caution"
        assert weather["confidence"] == 50
        assert weather["reasoning"] == "Analysis completed"

        schedule, _ = parse_or_default("nothing", SCHEDULE_DEFAULTS)
        assert schedule["insights"] == ["Unable to generate AI insights"]
        assert schedule["estimated_savings"] == {"days": 0, "cost": 0}

    def test_incompatible_and_null_values_keep_defaults(self):
        answer = '{"decision": null, "confidence": "high", "critical_factors": "rain", "reasoning": 5}'
        shaped, parsed = parse_or_default(answer, WEATHER_DECISION_DEFAULTS)

        assert parsed is True
        assert shaped == WEATHER_DECISION_DEFAULTS

    def test_bool_is_not_a_number(self):
        shaped, _ = parse_or_default('{"confidence": true}', WEATHER_DECISION_DEFAULTS)
        assert shaped["confidence"] == 50

    def test_nested_partial_merge(self):
        shaped, _ = parse_or_default(
            '{"financial_impact": {"delay_costs": 900, "surprise": 1}}', COMPLIANCE_DEFAULTS
        )
        assert shaped["financial_impact"] == {
            "estimated_remediation_cost": 0,
            "potential_penalties": 0,
            "delay_costs": 900,
            "total_risk": 0,
        }

    def test_array_answer_is_not_a_result(self):
        shaped, parsed = parse_or_default("[1, 2]", SCHEDULE_DEFAULTS)
        assert parsed is False
        assert shaped == SCHEDULE_DEFAULTS

    def test_defaults_are_not_mutated(self):
        shaped, _ = parse_or_default('{"issues": [{"a": 1}]}', COMPLIANCE_DEFAULTS)
        shaped["financial_impact"]["total_risk"] = 99
        assert COMPLIANCE_DEFAULTS["issues"] == []
        assert COMPLIANCE_DEFAULTS["financial_impact"]["total_risk"] == 0


def test_merge_ignores_unknown_keys():
    assert merge_defaults({"a": 1}, {"a": 2, "b": 3}) == {"a": 2}


def test_issues_grouped_by_severity():
    result = ComplianceAnalysisResult.from_dict(
        {
            "project_id": "P-2",
            "issues": [
                {"severity": "MINOR"},
                {"severity": "critical"},
                {"severity": "MAJOR"},
                {"description": "no severity"},
            ],
        }
    )
    grouped = result.issues_by_severity
    assert [len(grouped[s]) for s in ("CRITICAL", "MAJOR", "MINOR")] == [1, 1, 2]
    assert result.compliance_status == "CONDITIONAL"
