"""
Railway-Oriented Programming (ROP) support for the certificate binding plugin.

Explicit, composable error handling — no exceptions in business logic.

    from railway import ErrorCode, Result

    def require_domains(domains: list[str]) -> Result[list[str]]:
        if not domains:
            return Result.failure(ErrorCode.INVALID_PARAMETERS, "domain must not be empty")
        return Result.success(domains)
"""

from railway.result import Result, Success, Failure
from railway.failure import ErrorCode, FailureDescription
from railway.execution import (
    ExecutionContext,
    NoOpExecutionContext,
    LoggingExecutionContext,
)
from railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultAssertions",
]

__version__ = "1.1.0"
