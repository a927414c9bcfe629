"""Case documents: pydantic models and the YAML loader/validator."""
from .loader import CaseValidationError, build_case, clear_case_cache, list_cases, load_case
from .models import CaseBundle

__all__ = [
    "CaseBundle",
    "CaseValidationError",
    "build_case",
    "clear_case_cache",
    "list_cases",
    "load_case",
]
