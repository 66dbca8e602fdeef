"""Agent implementations."""

from schoolgen.ai.agents.school_writer import Fallback, Generated, GenerationOutcome, SchoolWriter, enforce_invariants

__all__ = ["Fallback", "Generated", "GenerationOutcome", "SchoolWriter", "enforce_invariants"]
