#!/usr/bin/env python3
"""
Error taxonomy for the email flow analyzer.

None of these errors is allowed to escape a detection pass: the extractor,
the analysis channels and the fusion layer each catch them at their own
boundary and degrade to a documented fallback value.
"""

from typing import Any, Dict, Optional


class EmailFlowError(Exception):
    """Base exception for all analyzer errors.

    Attributes:
        message: Human-readable error message
        error_code: Optional error code for programmatic handling
        context: Additional context information
    """

    def __init__(self, message: str, error_code: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ExtractionError(EmailFlowError):
    """A document node is malformed or unsupported; the tree walk skips it."""

    def __init__(self, message: str, node_id: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {}) or {}
        if node_id:
            context["node_id"] = node_id
        super().__init__(message, error_code=kwargs.pop("error_code", "EXTRACTION"), context=context)
        self.node_id = node_id


class NetworkError(EmailFlowError):
    """An LLM call failed, timed out or returned a non-success status."""

    def __init__(self, message: str, status: Optional[int] = None, **kwargs):
        context = kwargs.pop("context", {}) or {}
        if status is not None:
            context["status"] = status
        super().__init__(message, error_code=kwargs.pop("error_code", "NETWORK"), context=context)
        self.status = status


class ParseError(EmailFlowError):
    """An LLM response is not valid JSON or does not have the expected shape."""

    def __init__(self, message: str, raw_response: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {}) or {}
        if raw_response is not None:
            context["raw_preview"] = raw_response[:200]
        super().__init__(message, error_code=kwargs.pop("error_code", "PARSE"), context=context)
        self.raw_response = raw_response


class ValidationError(EmailFlowError):
    """A field value is out of range or outside the closed category set."""

    def __init__(self, message: str, field_name: Optional[str] = None, value: Any = None, **kwargs):
        context = kwargs.pop("context", {}) or {}
        if field_name:
            context["field"] = field_name
            context["value"] = value
        super().__init__(message, error_code=kwargs.pop("error_code", "VALIDATION"), context=context)
        self.field_name = field_name
        self.value = value
