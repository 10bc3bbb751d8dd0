"""Configuration materializing exports."""

from .credential_extraction import (
    AWS_ACCESS_KEY_ID,
    AWS_BUCKET,
    AWS_REGION,
    AWS_SECRET_ACCESS_KEY,
    CredentialExtractionError,
    CredentialRecord,
    extract_credentials,
    state_object_key,
)
from .tfvars_rendering import (
    AWS_VARS_FILE,
    BACKEND_FILE,
    INPUT_VARS_FILE,
    InvalidVariableNameError,
    hcl_string,
    render_backend,
    render_credential_vars,
    render_input_vars,
)

__all__ = [
    "AWS_ACCESS_KEY_ID",
    "AWS_BUCKET",
    "AWS_REGION",
    "AWS_SECRET_ACCESS_KEY",
    "CredentialExtractionError",
    "CredentialRecord",
    "extract_credentials",
    "state_object_key",
    "AWS_VARS_FILE",
    "BACKEND_FILE",
    "INPUT_VARS_FILE",
    "InvalidVariableNameError",
    "hcl_string",
    "render_backend",
    "render_credential_vars",
    "render_input_vars",
]
