"""End-to-end QRGGIF pipeline.

Core Components:
    - full_pipeline: QRGGIFPipeline orchestrator and ``qrggif-decode`` CLI
    - verification: Client for the external fingerprint verification service
    - types: PipelineResult
"""

from .full_pipeline import QRGGIFPipeline
from .types import PipelineResult
from .verification import VerificationClient, VerificationResult

__all__ = [
    "QRGGIFPipeline",
    "PipelineResult",
    "VerificationClient",
    "VerificationResult",
]
