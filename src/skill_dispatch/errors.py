"""Error taxonomy for compilation, registration and dispatch."""

from __future__ import annotations


class SkillDispatchError(Exception):
    """Base class for all errors raised by this package."""


class InvalidPatternSpec(SkillDispatchError, ValueError):
    """A declarative pattern could not be compiled."""


class DuplicateSkillId(SkillDispatchError, ValueError):
    def __init__(self, skill_id: str) -> None:
        super().__init__(f"Skill already registered: {skill_id}")
        self.skill_id = skill_id


class UnknownSkillId(SkillDispatchError, KeyError):
    def __init__(self, skill_id: str) -> None:
        super().__init__(f"Unknown skill: {skill_id}")
        self.skill_id = skill_id

    def __str__(self) -> str:
        return str(self.args[0])


class RegistrySealed(SkillDispatchError, RuntimeError):
    """Raised when registering after initialization has completed."""


class ChainFailure(SkillDispatchError):
    """A skill chain stopped in the `FAILED` state."""

    def __init__(self, skill_id: str, reason: str) -> None:
        super().__init__(f"{skill_id}: {reason}")
        self.skill_id = skill_id
        self.reason = reason


class ProcessingFailed(ChainFailure):
    pass


class ProcessingTimedOut(ProcessingFailed):
    def __init__(self, skill_id: str, timeout_seconds: float) -> None:
        super().__init__(skill_id, f"processing timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class RenderingFailed(ChainFailure):
    pass
