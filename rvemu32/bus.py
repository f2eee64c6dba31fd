"""Memory bus interface and a flat little-endian RAM bus."""

from abc import ABC, abstractmethod

MOCK_MEMORY_SIZE = 8192


def _width_mask(width: int) -> int:
    return (1 << (8 * width)) - 1


class Bus(ABC):
    """Memory and device access as seen by the CPU."""

    cycles: int = 0
    last_completed: int = 0

    @abstractmethod
    def read8(self, addr: int) -> int: ...

    @abstractmethod
    def read16(self, addr: int) -> int: ...

    @abstractmethod
    def read32(self, addr: int) -> int: ...

    @abstractmethod
    def write8(self, addr: int, val: int) -> None: ...

    @abstractmethod
    def write16(self, addr: int, val: int) -> None: ...

    @abstractmethod
    def write32(self, addr: int, val: int) -> None: ...

    def get_interrupt_level(self) -> bool:
        """Whether the external interrupt controller requests an interrupt."""
        return False

    def get_timer_interrupt_level(self) -> bool:
        """Whether a timer interrupt is requested."""
        return False

    def get_software_interrupt_level(self) -> bool:
        """Whether a software interrupt is requested."""
        return False

    def tick(self) -> None:
        """Advance the clock by one cycle."""
        self.cycles += 1

    def plic_claim(self) -> int:
        """Claim the highest-priority pending external interrupt (0 if none)."""
        return 0

    def plic_complete(self, source_id: int) -> None:
        """Signal that handling of an external interrupt has finished."""
        self.last_completed = source_id


class MockBus(Bus):
    """A bus backed by a fixed block of little-endian RAM."""

    def __init__(self, size: int = MOCK_MEMORY_SIZE) -> None:
        self.memory = bytearray(size)

    def _span(self, addr: int, width: int) -> slice:
        if addr < 0 or addr + width > len(self.memory):
            raise IndexError(f"address 0x{addr:08x} out of range")
        return slice(addr, addr + width)

    def _read(self, addr: int, width: int) -> int:
        return int.from_bytes(self.memory[self._span(addr, width)], "little")

    def _write(self, addr: int, width: int, val: int) -> None:
        self.memory[self._span(addr, width)] = (val & _width_mask(width)).to_bytes(width, "little")

    def read8(self, addr: int) -> int:
        return self._read(addr, 1)

    def read16(self, addr: int) -> int:
        return self._read(addr, 2)

    def read32(self, addr: int) -> int:
        return self._read(addr, 4)

    def write8(self, addr: int, val: int) -> None:
        self._write(addr, 1, val)

    def write16(self, addr: int, val: int) -> None:
        self._write(addr, 2, val)

    def write32(self, addr: int, val: int) -> None:
        self._write(addr, 4, val)

    def write_inst32(self, addr: int, inst: int) -> None:
        """Place a 32-bit instruction at ``addr``."""
        self.write32(addr, inst)

    def write_inst16(self, addr: int, inst: int) -> None:
        """Place a 16-bit compressed instruction at ``addr``."""
        self.write16(addr, inst)