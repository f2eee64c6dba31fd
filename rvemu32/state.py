"""Privilege modes and the outcome of executing one step."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class PrivilegeMode(IntEnum):
    """RISC-V privilege levels, valued as encoded in mstatus.MPP."""

    USER = 0
    SUPERVISOR = 1
    MACHINE = 3


class StepKind(Enum):
    OK = "ok"
    TRAP = "trap"
    JUMPED = "jumped"


@dataclass(frozen=True)
class StepResult:
    """What a single CPU step did: fell through, trapped, or jumped."""

    kind: StepKind
    code: int | None = None

    @staticmethod
    def ok() -> StepResult:
        return StepResult(StepKind.OK)

    @staticmethod
    def trap(code: int) -> StepResult:
        return StepResult(StepKind.TRAP, code)

    @staticmethod
    def jumped() -> StepResult:
        return StepResult(StepKind.JUMPED)

    @property
    def is_ok(self) -> bool:
        return self.kind is StepKind.OK

    @property
    def is_trap(self) -> bool:
        return self.kind is StepKind.TRAP

    @property
    def is_jumped(self) -> bool:
        return self.kind is StepKind.JUMPED