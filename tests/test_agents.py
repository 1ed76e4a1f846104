import json
from datetime import date, timedelta

import pytest

from conftest import FakeModelClient, text_response, tool_response
from siteproof.agents import ComplianceSentinel, ScheduleOptimizer, ScheduleRequest, WeatherDecisionEngine
from siteproof.agents.scheduling import ScheduleConstraints
from siteproof.analysis.weather import WeatherAnalysis
from siteproof.models import (
    InspectionData,
    ProjectPhase,
    Rainfall,
    WeatherConditions,
    WeatherForecastDay,
)
from siteproof.personas import COMPLIANCE_PROMPT, SCHEDULER_PROMPT, WEATHER_ASSESSOR_PROMPT

MONDAY = date(2026, 1, 5)

COMPLIANCE_ANSWER = json.dumps(
    {
        "compliance_status": "NON_COMPLIANT",
        "risk_level": "HIGH",
        "issues": [
            {"category": "Earthworks", "severity": "CRITICAL", "description": "96% < 98% MDD"},
            "not an issue",
        ],
        "recommendations": [{"priority": "HIGH", "action": "Re-compact lot 4"}],
        "summary": "Compaction fails AS 3798 level 1.",
    }
)


def clay_after_rain():
    return InspectionData(
        type="earthworks",
        material="clay",
        weather=WeatherConditions(recent_rainfall=Rainfall(amount=45, days_ago=5)),
    )


def forecast(rainfall):
    return [
        WeatherForecastDay(date=MONDAY + timedelta(days=i), temperature_min=15,
                           temperature_max=25, rainfall=mm)
        for i, mm in enumerate(rainfall)
    ]


class TestComplianceSentinel:
    def test_json_answer_is_shaped(self, make_driver):
        client = FakeModelClient(
            [
                tool_response(
                    "check_compaction_compliance",
                    {"dry_density": 19.4, "max_dry_density": 20.2, "required_percentage": 98},
                ),
                text_response("Findings follow.\n" + COMPLIANCE_ANSWER),
            ]
        )
        sentinel = ComplianceSentinel("org-1", make_driver(client))
        result = sentinel.analyze_project({"id": "P-7", "type": "earthworks"})

        assert result.organization_id == "org-1"
        assert result.project_id == "P-7"
        assert result.compliance_status == "NON_COMPLIANT"
        assert result.parsed is True
        assert len(result.issues) == 1
        assert result.analysis == "Compaction fails AS 3798 level 1."
        assert result.tool_calls_made == 1
        assert result.timestamp.endswith("+00:00")
        assert [t.tool_name for t in sentinel.tool_execution_log] == ["check_compaction_compliance"]

        call = client.calls[0]
        assert call["system"] == COMPLIANCE_PROMPT
        assert call["temperature"] == 0.2
        assert '"id": "P-7"' in call["messages"][0]["content"]

    def test_text_answer_keeps_defaults(self, make_driver):
        client = FakeModelClient([text_response("Everything looks broadly fine.")])
        result = ComplianceSentinel("org-1", make_driver(client)).analyze_project({"project_id": "P-8"})

        assert result.project_id == "P-8"
        assert result.parsed is False
        assert result.compliance_status == "CONDITIONAL"
        assert result.risk_level == "MEDIUM"
        assert result.analysis == "Everything looks broadly fine."
        assert result.tool_calls_made == 0

    def test_project_id_defaults_to_unknown(self, make_driver):
        client = FakeModelClient([text_response("{}")])
        result = ComplianceSentinel("org-1", make_driver(client)).analyze_project({})
        assert result.project_id == "unknown"

    def test_quick_check(self, make_driver):
        sentinel = ComplianceSentinel("org-1", make_driver(FakeModelClient([])))
        result = sentinel.quick_compliance_check(
            [
                {"test_type": "compaction", "value": 96, "unit": "%", "requirement": 98},
                {"test_type": "compaction", "value": 99, "unit": "%", "requirement": 98},
                {"test_type": "compaction", "value": 19.4, "unit": "kN/m³", "requirement": 20},
                {"test_type": "moisture", "value": 30, "unit": "%", "requirement": 15},
            ]
        )
        assert result.passed is False
        assert result.failures == ["Compaction failed: 96% < 98% required"]
        assert result.recommendations[0].startswith("Additional compaction required")

    def test_quick_check_all_passing(self, make_driver):
        sentinel = ComplianceSentinel("org-1", make_driver(FakeModelClient([])))
        result = sentinel.quick_compliance_check([{"test_type": "compaction", "value": 98,
                                                   "unit": "%", "requirement": 98}])
        assert result.passed is True
        assert result.failures == []


class TestWeatherDecisionEngine:
    def test_model_decision_is_normalised(self, make_driver):
        answer = json.dumps(
            {
                "decision": "postpone",
                "confidence": 140,
                "reasoning": "Clay is still wet",
                "critical_factors": ["drying time"],
                "optimal_window": "next week",
            }
        )
        client = FakeModelClient([text_response(answer)])
        decision = WeatherDecisionEngine(make_driver(client)).make_weather_decision(clay_after_rain())

        assert decision.source == "ai"
        assert decision.decision == "postpone"
        assert decision.confidence == 100
        assert decision.optimal_window is None
        assert decision.critical_factors == ["drying time"]

        call = client.calls[0]
        assert call["system"] == WEATHER_ASSESSOR_PROMPT
        assert call["tools"] is None
        assert call["temperature"] == 0.2
        assert "45mm 5 days ago" in call["messages"][0]["content"]

    def test_unknown_decision_uses_default(self, make_driver):
        client = FakeModelClient([text_response('{"decision": "maybe", "confidence": -5}')])
        decision = WeatherDecisionEngine(make_driver(client)).make_weather_decision(clay_after_rain())
        assert decision.decision == "proceed_with_caution"
        assert decision.confidence == 0

    def test_unparseable_answer_falls_back_to_rules(self, make_driver):
        client = FakeModelClient([text_response("I would wait a while.")])
        decision = WeatherDecisionEngine(make_driver(client)).make_weather_decision(
            clay_after_rain(), forecast([0, 0, 30])
        )
        assert decision.source == "rules"
        assert decision.decision == "postpone"
        assert decision.confidence == 90
        assert any("16 more days" in factor for factor in decision.critical_factors)
        assert len(decision.alternative_plans) == 3

    def test_rule_based_caution_and_proceed(self):
        cautious = WeatherDecisionEngine.make_rule_based_decision(
            WeatherAnalysis(warnings=["a", "b", "c"])
        )
        assert (cautious.decision, cautious.confidence) == ("proceed_with_caution", 60)

        clear = WeatherDecisionEngine.make_rule_based_decision(WeatherAnalysis())
        assert (clear.decision, clear.confidence) == ("proceed", 75)
        assert clear.reasoning == "Based on standard weather rules"

    def test_risk_assessment(self):
        inspection = clay_after_rain()
        inspection.weather.conditions = "rainy"

        assessment = WeatherDecisionEngine.assess_weather_risks(inspection)
        assert assessment.total_risk_score == 65
        assert assessment.overall_risk == "high"

        assessment = WeatherDecisionEngine.assess_weather_risks(inspection, forecast([0, 30]))
        assert assessment.total_risk_score == 85
        assert assessment.overall_risk == "critical"
        assert assessment.risk_factors[-1].factor == "Incoming severe weather"

    def test_risk_assessment_temperature(self):
        inspection = InspectionData(type="concrete", weather=WeatherConditions(temperature=42))
        assessment = WeatherDecisionEngine.assess_weather_risks(inspection)
        assert assessment.total_risk_score == 25
        assert assessment.risk_factors[0].severity == "high"
        assert assessment.overall_risk == "low"

    def test_contingency_plan(self):
        plan = WeatherDecisionEngine.generate_contingency_plan("concrete")
        assert "Plastic sheeting (200m²)" in plan.equipment
        assert len(plan.triggers) == 3

        plan = WeatherDecisionEngine.generate_contingency_plan("painting")
        assert plan.preparations == [] and plan.equipment == []
        assert plan.communication


def chain_request(**constraints):
    return ScheduleRequest(
        phases=[
            ProjectPhase(id="A", name="Bulk earthworks", duration=10),
            ProjectPhase(id="B", name="Retaining walls", duration=10, dependencies=["A"]),
            ProjectPhase(id="C", name="Landscaping", duration=5, dependencies=["B"]),
        ],
        constraints=ScheduleConstraints(must_start_after=MONDAY, **constraints),
    )


class TestScheduleOptimizer:
    def test_strategies_are_applied(self, make_driver):
        answer = json.dumps(
            {
                "strategies": [
                    {"type": "parallel", "affected_phases": ["A", "B"]},
                    {"type": "fast-track", "affected_phases": ["C"]},
                    {"type": "teleport", "affected_phases": ["A"]},
                ],
                "insights": ["Walls can start early"],
            }
        )
        client = FakeModelClient([text_response(answer)])
        request = chain_request()
        schedule = ScheduleOptimizer(make_driver(client)).optimize_schedule(request)

        assert schedule.source == "ai"
        assert schedule.original_duration == 25
        assert schedule.optimized_duration == 14
        assert schedule.time_saved == 11
        assert schedule.improvements[0].startswith("Duration 25 -> 14 days")
        assert "Run Retaining walls in parallel with Bulk earthworks" in schedule.improvements
        assert "Fast-track Landscaping to 4 days" in schedule.improvements
        assert schedule.insights == ["Walls can start early"]
        # caller's phases are untouched
        assert request.phases[1].dependencies == ["A"]
        assert request.phases[2].duration == 5

        call = client.calls[0]
        assert call["system"] == SCHEDULER_PROMPT
        assert call["temperature"] == 0.3
        assert call["tools"] is None

    def test_unparseable_answer_applies_nothing(self, make_driver):
        client = FakeModelClient([text_response("Looks fine to me.")])
        schedule = ScheduleOptimizer(make_driver(client)).optimize_schedule(chain_request())

        assert schedule.optimized_duration == schedule.original_duration == 25
        assert schedule.strategies == []
        assert schedule.insights == ["Unable to generate AI insights"]

    def test_deadline_warning(self, make_driver):
        client = FakeModelClient([text_response("{}")])
        request = chain_request(must_complete_before=MONDAY + timedelta(days=5))
        schedule = ScheduleOptimizer(make_driver(client)).optimize_schedule(request)
        assert schedule.warnings == [
            "Projected completion 2026-01-30 is after the required date 2026-01-10"
        ]

    def test_weather_window_notes(self, make_driver):
        client = FakeModelClient([text_response("{}")])
        request = ScheduleRequest(
            phases=[ProjectPhase(id="S", name="Concrete slab", duration=2)],
            constraints=ScheduleConstraints(must_start_after=MONDAY, weather_sensitive=True),
            weather_forecast=forecast([20, 0, 0, 0]),
        )
        schedule = ScheduleOptimizer(make_driver(client)).optimize_schedule(request)
        assert (
            "Schedule Concrete slab in the 2026-01-06 to 2026-01-07 weather window (score 100)"
            in schedule.improvements
        )

    @pytest.mark.parametrize(
        "council, duration, buffer",
        [("City of Casey", 58, 0), ("Georges River", 30, 52)],
    )
    def test_council_adjustments(self, make_driver, council, duration, buffer):
        request = ScheduleRequest(
            phases=[
                ProjectPhase(id="DA", name="Development approval", duration=30, type="approval"),
                ProjectPhase(id="W", name="Works", duration=20, dependencies=["DA"]),
            ],
            constraints=ScheduleConstraints(must_start_after=MONDAY, council_approval=council),
        )
        schedule = ScheduleOptimizer(make_driver(FakeModelClient([]))).rule_based_optimization(request)
        approval = schedule.optimized_phases[0]
        assert approval["duration"] == duration
        assert request.phases[0].duration == 30
        assert schedule.optimized_duration == duration + 20
        assert len(schedule.improvements) == 1
        if buffer:
            assert f"{buffer} day buffer added" in schedule.improvements[0]

    def test_rule_based_optimization(self, make_driver):
        request = ScheduleRequest(
            phases=[
                ProjectPhase(id="A", name="Retaining wall", duration=10),
                ProjectPhase(id="B", name="Fencing", duration=6),
            ]
        )
        client = FakeModelClient([])
        schedule = ScheduleOptimizer(make_driver(client)).rule_based_optimization(request)

        assert client.calls == []
        assert schedule.source == "rules"
        assert schedule.time_saved == 3
        assert schedule.estimated_savings == {"days": 3, "cost": 0}
        assert schedule.strategies[0]["type"] == "parallel"

    def test_buffer_and_resequence(self, make_driver):
        optimizer = ScheduleOptimizer(make_driver(FakeModelClient([])))
        phases = [
            ProjectPhase(id="A", name="A", duration=30, critical=True),
            ProjectPhase(id="B", name="B", duration=10, buffer=6),
        ]
        applied = optimizer.apply_strategies(
            phases, [{"type": "buffer"}, {"type": "resequence"}], ["B", "A"]
        )
        assert [p.id for p in phases] == ["B", "A"]
        assert phases[1].buffer == 3
        assert phases[0].buffer == 3
        assert applied[-1] == "Phases resequenced: B, A"

    def test_level_resources(self, make_driver):
        optimizer = ScheduleOptimizer(make_driver(FakeModelClient([])))
        phases = [
            ProjectPhase(id="A", name="A", duration=5),
            ProjectPhase(id="I", name="I", duration=1, type="inspection"),
        ]
        allocations = optimizer.level_resources(
            phases, {"workers": {"available": 5, "cost": 400}, "inspectors": {"available": 4, "cost": 600}}
        )
        construction, inspection = allocations
        assert construction.resources == [{"type": "workers", "quantity": 5, "utilization": 200.0}]
        assert construction.conflicts == [{"phase_id": "A", "resource_type": "workers", "shortfall": 5}]
        assert inspection.conflicts == []


def test_schedule_request_from_dict():
    request = ScheduleRequest.from_dict(
        {
            "project_name": "Lot 12",
            "phases": [{"id": "A", "name": "Clearing", "duration_days": 4}],
            "constraints": {"must_start_after": "2026-02-02", "weather_sensitive": True},
            "weather_forecast": [{"date": "2026-02-02", "temperature": {"min": 12, "max": 24}, "rainfall": 3}],
        }
    )
    assert request.start_date == date(2026, 2, 2)
    assert request.phases[0].duration == 4
    assert request.weather_forecast[0].temperature_max == 24
    assert request.summary()["project_name"] == "Lot 12"
