"""
Railway-Oriented Programming primitives for the issuance pipeline.

Every stage returns a Result instead of raising, so a failing stage
short-circuits the rest of the railway and reaches the caller unchanged:

    from tlsgen.railway import ErrorCode, Result

    def check_size(bits: int) -> Result[int]:
        if bits < 2048:
            return Result.failure(ErrorCode.KEY_GENERATION_ERROR, "Key too small")
        return Result.success(bits)
"""

from tlsgen.railway.assertions import ResultAssertions
from tlsgen.railway.failure import ErrorCode, FailureDescription
from tlsgen.railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ResultAssertions",
]
