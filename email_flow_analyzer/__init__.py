#!/usr/bin/env python3
"""
Email Flow Analyzer Package
Detects transactional email opportunities in design documents
"""

from .config import AnalysisConfig, load_env_file
from .email_copy_generator import EmailCopy, EmailCopyGenerator
from .engine import DetectionEngine, PassToken
from .interfaces import (AIAnalysis, DetectionResult, EmailCategory, EmailOpportunity,
                         FlowSummary, Screen, ScreenContent, VisualAnalysis)

__version__ = "0.1.0"

__all__ = [
    'AnalysisConfig',
    'load_env_file',
    'EmailCopy',
    'EmailCopyGenerator',
    'DetectionEngine',
    'PassToken',
    'AIAnalysis',
    'DetectionResult',
    'EmailCategory',
    'EmailOpportunity',
    'FlowSummary',
    'Screen',
    'ScreenContent',
    'VisualAnalysis',
]
