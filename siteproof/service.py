"""
SiteProofAI: one object that owns the client, tool registry and agents.

Build it once (usually with from_env) and pass it to whatever needs it.
"""
from __future__ import annotations

import logging
from typing import Any

from .agents import (
    ComplianceSentinel,
    InspectionAnalyzer,
    InspectionContext,
    ITPReportGenerator,
    ITPReportRequest,
    ScheduleOptimizer,
    ScheduleRequest,
    WeatherDecisionEngine,
)
from .config import AIConfig
from .conversation import ConversationDriver, ConversationResult, TokenCounter
from .llm import ClaudeClient
from .models import InspectionData, WeatherForecastDay
from .personas import COMPLIANCE_PROMPT, PLANNING_PROMPT, WEATHER_PROMPT, get_persona
from .shaping import (
    ComplianceAnalysisResult,
    InspectionAnalysisResult,
    ITPReport,
    OptimizedSchedule,
    WeatherDecision,
)
from .tokenizer import analyze_request_tokens
from .tools.registry import ToolRegistry, default_registry

LOGGER = logging.getLogger(__name__)


class SiteProofAI:
    def __init__(
        self,
        config: AIConfig,
        client: ClaudeClient | None = None,
        registry: ToolRegistry | None = None,
        token_counter: TokenCounter | None = analyze_request_tokens,
    ):
        self.config = config
        self.client = client or ClaudeClient(config)
        self.registry = registry or default_registry()
        self.driver = ConversationDriver(self.client, self.registry, config, token_counter)
        self.weather_engine = WeatherDecisionEngine(self.driver)
        self.schedule_optimizer = ScheduleOptimizer(self.driver)
        self.inspection_analyzer = InspectionAnalyzer(self.driver)
        self.itp_generator = ITPReportGenerator(self.driver)

    @classmethod
    def from_env(cls) -> SiteProofAI:
        return cls(AIConfig.from_env())

    def ask(
        self,
        query: str,
        context: dict[str, Any] | None = None,
        persona: str | None = None,
    ) -> ConversationResult:
        """
        Answer a free-form question using the tool catalog.

        Args:
            query: The question
            context: Extra "key: value" context appended to the question
            persona: compliance, weather, planning or default; chosen from
                the query when None
        """
        system_prompt = get_persona(persona).prompt if persona else None
        return self.driver.run(query, context, system_prompt)

    def check_compliance(self, query: str, context: dict[str, Any] | None = None) -> ConversationResult:
        return self.driver.run(query, context, COMPLIANCE_PROMPT)

    def analyze_weather(self, query: str, context: dict[str, Any] | None = None) -> ConversationResult:
        return self.driver.run(query, context, WEATHER_PROMPT)

    def plan_project(self, query: str, context: dict[str, Any] | None = None) -> ConversationResult:
        return self.driver.run(query, context, PLANNING_PROMPT)

    def compliance_sentinel(self, organization_id: str = "default") -> ComplianceSentinel:
        return ComplianceSentinel(organization_id, self.driver)

    def analyze_project(
        self, project_data: dict[str, Any], organization_id: str = "default"
    ) -> ComplianceAnalysisResult:
        return self.compliance_sentinel(organization_id).analyze_project(project_data)

    def analyze_inspection(
        self,
        inspection: InspectionData | dict[str, Any],
        context: InspectionContext | dict[str, Any] | None = None,
    ) -> InspectionAnalysisResult:
        if isinstance(inspection, dict):
            inspection = InspectionData.from_dict(inspection)
        if isinstance(context, dict):
            context = InspectionContext.from_dict(context)
        return self.inspection_analyzer.analyze_inspection(inspection, context)

    def generate_itp_report(
        self,
        request: ITPReportRequest | dict[str, Any],
        history: dict[str, Any] | None = None,
    ) -> ITPReport:
        if isinstance(request, dict):
            request = ITPReportRequest.from_dict(request)
        return self.itp_generator.generate_report(request, history)

    def weather_decision(
        self,
        inspection: InspectionData | dict[str, Any],
        forecast: list[WeatherForecastDay] | list[dict[str, Any]] | None = None,
    ) -> WeatherDecision:
        if isinstance(inspection, dict):
            inspection = InspectionData.from_dict(inspection)
        if forecast:
            forecast = [
                day if isinstance(day, WeatherForecastDay) else WeatherForecastDay.from_dict(day)
                for day in forecast
            ]
        return self.weather_engine.make_weather_decision(inspection, forecast or None)

    def optimize_schedule(
        self, request: ScheduleRequest | dict[str, Any], *, use_model: bool = True
    ) -> OptimizedSchedule:
        if isinstance(request, dict):
            request = ScheduleRequest.from_dict(request)
        if not use_model:
            return self.schedule_optimizer.rule_based_optimization(request)
        return self.schedule_optimizer.optimize_schedule(request)

    def run_tool(self, name: str, tool_input: dict[str, Any]) -> dict[str, Any]:
        """Execute one tool locally, without the model."""
        LOGGER.debug("Running tool %s directly", name)
        return self.registry.execute(name, tool_input)
