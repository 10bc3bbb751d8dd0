"""Run input scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILENAME = "config.yaml"

_CONFIG_SCAFFOLD_TEMPLATE = """# Run input template for tf-repo-executor.
# Replace every <REQUIRED> placeholder before running.
# Replace <OPTIONAL> placeholders only when a target needs them, otherwise delete the line.
# JSON with the same structure is accepted as well.

dry_run: true

repos:
  - name: "<REQUIRED>"
    repository: "<REQUIRED>"
    # Commit hash (full or abbreviated) or symbolic ref to check out.
    ref: "<REQUIRED>"
    # Directory inside the repository holding the Terraform root module.
    project_path: "<REQUIRED>"
    # Destroy the target instead of applying it.
    delete: false
    # Secret with aws_access_key_id and aws_secret_access_key (plus bucket and region
    # unless both are set explicitly below). Omit version to read the latest.
    aws_creds:
      path: "<REQUIRED>"
      version: "<OPTIONAL>"
    # Explicit state bucket and region win over the values stored in aws_creds.
    bucket: "<OPTIONAL>"
    region: "<OPTIONAL>"
    # Prefix for the state object key.
    bucket_path: "<OPTIONAL>"
    require_fips: false
    tf_version: "<REQUIRED>"
    variables:
      # Key/value pairs rendered into input.auto.tfvars.
      inputs:
        path: "<OPTIONAL>"
        version: "<OPTIONAL>"
      # Destination for captured terraform outputs after apply.
      outputs:
        path: "<OPTIONAL>"
"""


def build_placeholder_configuration() -> str:
    """Build a YAML run input template with placeholders and inline guidance."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str) -> Path:
    """Write the placeholder run input template to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Run input file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
