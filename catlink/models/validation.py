# catlink/models/validation.py
from typing import List, Optional
from pydantic import BaseModel

class ValidationResult(BaseModel):
    """Outcome of a validation: errors block, warnings are advisory"""
    is_valid: bool = True
    errors: List[str] = []
    warnings: List[str] = []

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def failure(cls, *errors: str) -> "ValidationResult":
        return cls(is_valid=False, errors=list(errors))

    def add_error(self, error: str) -> None:
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def extend(self, other: "ValidationResult", prefix: Optional[str] = None) -> None:
        """Merge another result into this one, optionally tagging each message"""
        tag = f"[{prefix}] " if prefix else ""
        for error in other.errors:
            self.add_error(f"{tag}{error}")
        for warning in other.warnings:
            self.add_warning(f"{tag}{warning}")
