"""Ledger network access: submission, verification and cost estimation."""

from .client import RpcClient
from .estimation import CostEstimate, estimate_request_cost, static_estimate
from .submitter import SubmissionResult, Submitter

__all__ = [
    "CostEstimate",
    "RpcClient",
    "SubmissionResult",
    "Submitter",
    "estimate_request_cost",
    "static_estimate",
]
