"""Data models and schemas.

Defines the data structures used throughout the proxy:
- GenerationRequest / UploadedAsset: Inputs and staged images
- GenerationJob / PollState / PollOutcome: Asynchronous job lifecycle
- GenerationResult: The caller-facing result contract
- BackendJobResponse / HostUploadResponse: External payload validation
"""

from vton_proxy.models.generation import (
    ErrorKind,
    GenerationJob,
    GenerationRequest,
    GenerationResult,
    HostRole,
    ImmediateResult,
    JobStarted,
    JobStatus,
    ModelValidationError,
    PollOutcome,
    PollState,
    PollTerminal,
    SubmitFailure,
    SubmitOutcome,
    UploadedAsset,
)

__all__ = [
    "ErrorKind",
    "GenerationJob",
    "GenerationRequest",
    "GenerationResult",
    "HostRole",
    "ImmediateResult",
    "JobStarted",
    "JobStatus",
    "ModelValidationError",
    "PollOutcome",
    "PollState",
    "PollTerminal",
    "SubmitFailure",
    "SubmitOutcome",
    "UploadedAsset",
]
