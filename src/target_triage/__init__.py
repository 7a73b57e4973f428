"""TargetTriage: drug target triage for a disease."""

__version__ = "0.1.0"
