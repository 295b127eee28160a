"""Category link graph validation and cascade inventory deduction."""

__version__ = "0.1.0"
