"""Security analyzers that produce SecurityIssue findings."""

from remedy.analyzers.base import Analyzer
from remedy.analyzers.clippy import ClippyAnalyzer
from remedy.analyzers.pattern import PatternAnalyzer
from remedy.analyzers.registry import AnalyzerRegistry
from remedy.analyzers.semgrep import SemgrepAnalyzer

__all__ = [
    "Analyzer",
    "AnalyzerRegistry",
    "ClippyAnalyzer",
    "PatternAnalyzer",
    "SemgrepAnalyzer",
]
