import json

import pytest

from conftest import FakeModelClient, text_response, tool_response
from siteproof.agents import InspectionAnalyzer, InspectionContext, ITPReportGenerator, ITPReportRequest
from siteproof.agents.inspection import InspectionFindings, extract_recommendations
from siteproof.agents.itp_report import FAILED_REPORT, validate_inspection
from siteproof.models import InspectionData, Measurements, Rainfall, WeatherConditions
from siteproof.personas import ANALYST_PROMPT, INSPECTOR_PROMPT, REPORT_WRITER_PROMPT

ITP_ANALYSIS = json.dumps(
    {
        "overview": "Clay fill is too wet to place.",
        "findings": ["Drying time not met"],
        "risks": [{"description": "Rework", "severity": "high", "mitigation": "Wait"}, "bad"],
    }
)


def wet_clay(**overrides):
    data = dict(
        id="INS-1",
        type="earthworks",
        location="Lot 4",
        material="clay",
        measurements=Measurements(proctor_value=99),
        weather=WeatherConditions(recent_rainfall=Rainfall(amount=45, days_ago=5)),
    )
    data.update(overrides)
    return InspectionData(**data)


class TestInspectionAnalyzer:
    def test_tool_results_decide_status(self, make_driver):
        client = FakeModelClient(
            [
                tool_response("verify_compliance", {}),
                tool_response("identify_defects", {}, tool_id="toolu_2"),
                tool_response(
                    "assess_risk",
                    {"activity_type": "earthworks", "hazards": [{"type": "collapse", "severity": 4, "likelihood": 4}]},
                    tool_id="toolu_3",
                ),
                text_response(
                    "Summary.\n1. We recommend re-testing lot 4.\n- Crews should cover stockpiles."
                ),
            ]
        )
        analyzer = InspectionAnalyzer(make_driver(client, max_iterations=5))
        inspection = wet_clay(non_conformances=[{"description": "Cracked pit", "severity": "critical"}])

        result = analyzer.analyze_inspection(inspection, InspectionContext(project_id="P-1"))

        assert result.overall_status == "fail"
        assert result.inspection_id == "INS-1"
        assert result.project_id == "P-1"
        assert result.tool_calls_made == 3
        assert result.compliance_results[0]["compliant"] is False
        assert [d["description"] for d in result.defects] == ["Cracked pit"]
        assert result.defects[0]["location"] == "Lot 4"
        assert result.risk_assessment["overall_risk"] == "high"
        assert result.recommendations == [
            "Work must not proceed until critical issues are resolved",
            "Review and rectify all non-compliant items",
            "Address critical defects immediately",
            "We recommend re-testing lot 4.",
            "Crews should cover stockpiles.",
        ]
        assert result.report_generated is False
        assert client.calls[0]["system"] == INSPECTOR_PROMPT
        assert client.calls[0]["temperature"] == 0.2
        assert "Cracked pit (critical)" in client.calls[0]["messages"][0]["content"]

    def test_inspection_fills_tool_inputs(self, make_driver):
        client = FakeModelClient([tool_response("verify_compliance", {}), text_response("Done.")])
        analyzer = InspectionAnalyzer(make_driver(client))

        analyzer.analyze_inspection(wet_clay())

        [execution] = analyzer.tool_execution_log
        assert execution.success is True
        assert execution.input["inspection_type"] == "earthworks"
        assert execution.input["measurements"] == {"proctor_value": 99}
        assert execution.input["recent_rainfall"] == {"amount": 45, "days_ago": 5}
        # the transcript keeps what the model sent
        assert client.calls[1]["messages"][1]["content"][0]["input"] == {}

    def test_model_input_wins_outside_compliance_check(self, make_driver):
        client = FakeModelClient(
            [
                tool_response(
                    "identify_defects",
                    {"inspection_area": "Pit 9", "observations": [{"description": "Scuff", "severity": "minor"}]},
                ),
                text_response("Done."),
            ]
        )
        analyzer = InspectionAnalyzer(make_driver(client))

        result = analyzer.analyze_inspection(
            wet_clay(non_conformances=[{"description": "Cracked pit", "severity": "critical"}])
        )

        assert [d["description"] for d in result.defects] == ["Scuff"]
        assert result.overall_status == "warning"

    def test_postponed_weather_fails(self, make_driver):
        client = FakeModelClient([tool_response("make_weather_decision", {}), text_response("Done.")])
        analyzer = InspectionAnalyzer(make_driver(client))

        result = analyzer.analyze_inspection(wet_clay(measurements=None))

        assert result.weather_assessment["decision"] == "postpone"
        assert result.overall_status == "fail"
        assert "Wait for suitable weather conditions before proceeding" in result.recommendations

    def test_failed_tool_is_ignored(self, make_driver):
        client = FakeModelClient(
            [
                tool_response("assess_risk", {"activity_type": "lifting", "hazards": [{"severity": 9, "likelihood": 1}]}),
                text_response("Done."),
            ]
        )
        result = InspectionAnalyzer(make_driver(client)).analyze_inspection(wet_clay(measurements=None))

        assert result.risk_assessment is None
        assert result.overall_status == "pass"

    def test_report_written_on_request(self, make_driver):
        client = FakeModelClient([text_response("Nothing to check."), text_response("# Inspection Report")])
        analyzer = InspectionAnalyzer(make_driver(client))
        context = InspectionContext(location="North pad", requires_report=True)

        result = analyzer.analyze_inspection(InspectionData(type="drainage"), context)

        assert result.overall_status == "pass"
        assert result.report_generated is True
        assert result.report_content == "# Inspection Report"
        report_call = client.calls[1]
        assert report_call["system"] == REPORT_WRITER_PROMPT
        assert report_call["tools"] is None
        prompt = report_call["messages"][0]["content"]
        assert "STATUS: pass" in prompt
        assert "drainage at North pad" in prompt

    def test_context_from_dict(self):
        context = InspectionContext.from_dict(
            {"project_id": "P-2", "previous_inspections": [{"date": "2026-01-01", "result": "pass"}, "x"]}
        )
        assert context.project_id == "P-2"
        assert len(context.previous_inspections) == 1
        assert context.requires_report is False


@pytest.mark.parametrize(
    "findings, status, first",
    [
        (InspectionFindings(), "pass", None),
        (InspectionFindings(risk_assessment={"overall_risk": "extreme"}), "warning",
         "Proceed with caution and implement recommended controls"),
        (InspectionFindings(risk_assessment={"overall_risk": "medium"}), "pass", None),
        (InspectionFindings(defects=[{"severity": "minor"}]), "warning",
         "Proceed with caution and implement recommended controls"),
        (InspectionFindings(weather_assessment={"can_proceed": False}), "fail",
         "Work must not proceed until critical issues are resolved"),
        (InspectionFindings(compliance_results=[{"compliant": True}]), "pass", None),
        (InspectionFindings(compliance_results=[{"compliant": False}]), "fail",
         "Work must not proceed until critical issues are resolved"),
    ],
)
def test_final_assessment(findings, status, first):
    result_status, recommendations = InspectionAnalyzer.generate_final_assessment(findings)
    assert result_status == status
    assert (recommendations[0] if recommendations else None) == first


def test_extract_recommendations():
    text = "1. Recommend a retest.\n2. Ignore this.\n• Fill should be covered\n- Nothing here"
    assert extract_recommendations(text) == ["Recommend a retest.", "Fill should be covered"]


class TestITPReportGenerator:
    def test_full_report(self, make_driver):
        client = FakeModelClient(
            [
                text_response(ITP_ANALYSIS),
                text_response('["Wait 16 more days", "Retest moisture"]'),
                text_response("# ITP Report\n\nBody\n"),
            ]
        )
        generator = ITPReportGenerator(make_driver(client))

        report = generator.generate_report(ITPReportRequest(inspection=wet_clay()))

        assert report.id.startswith("itp-")
        assert report.inspection_id == "INS-1"
        assert report.compliant is False
        assert [c["standard"] for c in report.compliance] == ["AS_3798"]
        assert report.summary == "Clay fill is too wet to place."
        assert report.detailed_analysis["risks"] == [
            {"description": "Rework", "severity": "high", "mitigation": "Wait"}
        ]
        assert report.recommendations == ["Wait 16 more days", "Retest moisture"]
        assert report.next_actions == [
            "Obtain approval for: Inspection before placing fill",
            "Obtain approval for: After each layer before next layer",
            "Obtain approval for: Final inspection before sign-off",
            "Wait 16 more days",
            "Retest moisture",
        ]
        assert report.report_markdown == "# ITP Report\n\nBody"
        assert report.parsed is True
        assert report.to_dict()["compliant"] is False

        assert [call["system"] for call in client.calls] == [ANALYST_PROMPT, ANALYST_PROMPT, REPORT_WRITER_PROMPT]
        assert all(call["tools"] is None for call in client.calls)
        assert client.calls[2]["temperature"] == 0.2
        assert "AS_3798: NON-COMPLIANT" in client.calls[2]["messages"][0]["content"]

    def test_unparseable_answers_fall_back(self, make_driver):
        client = FakeModelClient(
            [text_response("No idea."), text_response("Sorry, none."), text_response("")]
        )
        report = ITPReportGenerator(make_driver(client)).generate_report(ITPReportRequest(inspection=wet_clay()))

        assert report.parsed is False
        assert report.summary == "Analysis could not be completed"
        assert report.recommendations[0] == "Wait 16 more days before placing clay fill"
        assert report.report_markdown == FAILED_REPORT

    def test_compliant_inspection_has_no_approval_actions(self, make_driver):
        client = FakeModelClient(
            [text_response(ITP_ANALYSIS), text_response('{"recommendations": ["Keep records"]}'),
             text_response("# Report")]
        )
        inspection = InspectionData(type="earthworks", measurements=Measurements(proctor_value=99))

        report = ITPReportGenerator(make_driver(client)).generate_report(ITPReportRequest(inspection=inspection))

        assert report.compliant is True
        assert report.next_actions == ["Keep records"]

    def test_without_recommendations(self, make_driver):
        client = FakeModelClient([text_response(ITP_ANALYSIS), text_response("# Report")])
        request = ITPReportRequest(inspection=wet_clay(), include_recommendations=False)

        report = ITPReportGenerator(make_driver(client)).generate_report(request)

        assert report.recommendations == []
        assert len(report.next_actions) == 3
        assert len(client.calls) == 2

    def test_out_of_range_measurement_rejected_before_model_call(self, make_driver):
        client = FakeModelClient([])
        inspection = InspectionData(type="earthworks", measurements=Measurements(compaction_density=120))
        with pytest.raises(ValueError, match="compaction_density"):
            ITPReportGenerator(make_driver(client)).generate_report(ITPReportRequest(inspection=inspection))
        assert client.calls == []

    def test_validate_inspection(self):
        assert validate_inspection(wet_clay()) == []
        problems = validate_inspection(
            InspectionData(type="earthworks", measurements=Measurements(moisture_content=-1))
        )
        assert problems == ["moisture_content must be between 0 and 100, got -1"]


class TestITPReportRequest:
    def test_unknown_report_type(self):
        with pytest.raises(ValueError, match="Unknown report type"):
            ITPReportRequest(inspection=InspectionData(type="drainage"), report_type="glossy")

    def test_from_bare_inspection(self):
        request = ITPReportRequest.from_dict({"type": "drainage", "location": "Pit 3"})
        assert request.inspection.type == "drainage"
        assert request.standards is None
        assert request.report_type == "detailed"

    def test_from_wrapped_request(self):
        request = ITPReportRequest.from_dict(
            {"inspection": {"type": "concrete"}, "standards": ["AS_2870"], "report_type": "summary"}
        )
        assert request.standards == ["AS_2870"]
        assert request.report_type == "summary"


def test_inspection_from_dict_reads_reported_issues():
    inspection = InspectionData.from_dict(
        {
            "id": 42,
            "type": "drainage",
            "notes": "Pit lid loose",
            "non_conformances": [{"description": "Lid missing", "severity": "Minor"}, "loose text"],
        }
    )
    assert inspection.id == "42"
    assert inspection.notes == "Pit lid loose"
    assert inspection.non_conformances == [{"description": "Lid missing", "severity": "Minor"}]
