from .conflicts import apply_resolutions, detect_conflicts, resolution_map
from .executor import execute
from .summary import estimate_import_time, prepare_import_summary, render_summary_line
from .template import (
    generate_field_docs,
    generate_minimal_template,
    generate_template,
    validate_template_format,
)
from .validator import preflight_check, validate

__all__ = [
    "apply_resolutions",
    "detect_conflicts",
    "resolution_map",
    "execute",
    "estimate_import_time",
    "prepare_import_summary",
    "render_summary_line",
    "generate_field_docs",
    "generate_minimal_template",
    "generate_template",
    "validate_template_format",
    "preflight_check",
    "validate",
]
