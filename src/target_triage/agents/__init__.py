"""Agent modules for TargetTriage."""

from target_triage.agents.base import BaseAgent
from target_triage.agents.orchestrator import TargetResolutionError, TriageOrchestrator

__all__ = ["BaseAgent", "TargetResolutionError", "TriageOrchestrator"]
