"""
HTTP gateway for the users service.
"""

from src.api.app import create_app
from src.api.pipeline import OPERATIONS, OperationSpec, RequestPipeline, extract_bearer_credential

__all__ = [
    "create_app",
    "OPERATIONS",
    "OperationSpec",
    "RequestPipeline",
    "extract_bearer_credential",
]
