"""Analysis agents built on the conversation driver."""
from .compliance_sentinel import ComplianceSentinel, QuickCheckResult
from .inspection import InspectionAnalyzer, InspectionContext
from .itp_report import ITPReportGenerator, ITPReportRequest
from .scheduling import ScheduleOptimizer, ScheduleRequest
from .weather_decision import WeatherDecisionEngine

__all__ = [
    "ComplianceSentinel",
    "InspectionAnalyzer",
    "InspectionContext",
    "ITPReportGenerator",
    "ITPReportRequest",
    "QuickCheckResult",
    "ScheduleOptimizer",
    "ScheduleRequest",
    "WeatherDecisionEngine",
]
