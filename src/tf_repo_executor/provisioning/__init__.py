"""Provisioning exports."""

from .heartbeat import Heartbeat
from .plan_inspection import (
    FIPS_ATTRIBUTE,
    BackendVerificationError,
    ComplianceError,
    check_fips_compliance,
    uses_fips_endpoint,
    verify_s3_backend,
)
from .terraform_driver import (
    TERRAFORM_ENVIRONMENT,
    OutputCaptureError,
    ProvisioningError,
    ProvisioningRequest,
    StateSink,
    TerraformDriver,
)

__all__ = [
    "Heartbeat",
    "FIPS_ATTRIBUTE",
    "BackendVerificationError",
    "ComplianceError",
    "check_fips_compliance",
    "uses_fips_endpoint",
    "verify_s3_backend",
    "TERRAFORM_ENVIRONMENT",
    "OutputCaptureError",
    "ProvisioningError",
    "ProvisioningRequest",
    "StateSink",
    "TerraformDriver",
]
