"""Deterministic analyzers used by tools and agents."""
from .compliance import ComplianceChecker, ComplianceCheckResult
from .timeline import TimelineAnalyzer
from .weather import WeatherAnalyzer

__all__ = ["ComplianceChecker", "ComplianceCheckResult", "TimelineAnalyzer", "WeatherAnalyzer"]
