"""Core-Local Interruptor: machine timer and software interrupts."""

from dataclasses import dataclass

_MASK32 = 0xFFFF_FFFF
_MASK64 = 0xFFFF_FFFF_FFFF_FFFF

MSIP_OFFSET = 0x0000
MTIMECMP_LO = 0x4000
MTIMECMP_HI = 0x4004
MTIME_LO = 0xBFF8
MTIME_HI = 0xBFFC


def _set_low(value: int, low: int) -> int:
    return (value & ~_MASK32 & _MASK64) | (low & _MASK32)


def _set_high(value: int, high: int) -> int:
    return (value & _MASK32) | ((high & _MASK32) << 32)


@dataclass
class Clint:
    """Timer and software interrupt registers for hart 0."""

    msip: int = 0
    mtimecmp: int = 0
    mtime: int = 0

    def read(self, addr: int) -> int:
        """Read a 32-bit register; unknown offsets read as 0."""
        if addr == MSIP_OFFSET:
            return self.msip
        if addr == MTIMECMP_LO:
            return self.mtimecmp & _MASK32
        if addr == MTIMECMP_HI:
            return self.mtimecmp >> 32
        if addr == MTIME_LO:
            return self.mtime & _MASK32
        if addr == MTIME_HI:
            return self.mtime >> 32
        return 0

    def write(self, addr: int, val: int) -> None:
        """Write a 32-bit register; unknown offsets are ignored."""
        if addr == MSIP_OFFSET:
            self.msip = val & 1
        elif addr == MTIMECMP_LO:
            self.mtimecmp = _set_low(self.mtimecmp, val)
        elif addr == MTIMECMP_HI:
            self.mtimecmp = _set_high(self.mtimecmp, val)
        elif addr == MTIME_LO:
            self.mtime = _set_low(self.mtime, val)
        elif addr == MTIME_HI:
            self.mtime = _set_high(self.mtime, val)

    def tick(self) -> None:
        """Advance mtime by one, wrapping at 64 bits."""
        self.mtime = (self.mtime + 1) & _MASK64

    def get_timer_interrupt_level(self) -> bool:
        return self.mtime >= self.mtimecmp

    def get_software_interrupt_level(self) -> bool:
        return bool(self.msip & 1)