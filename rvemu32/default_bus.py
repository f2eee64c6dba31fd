"""System bus with RAM, a PLIC and a CLINT mapped into the address space."""

from __future__ import annotations

from pathlib import Path

from rvemu32.bus import MockBus, _width_mask
from rvemu32.clint import Clint
from rvemu32.plic import Plic

PLIC_BASE = 0x0C00_0000
PLIC_SIZE = 0x0040_0000

CLINT_BASE = 0x0200_0000
CLINT_SIZE = 0x0001_0000


class DefaultBus(MockBus):
    """Little-endian RAM starting at address 0, plus memory-mapped PLIC and CLINT."""

    def __init__(self, size: int) -> None:
        super().__init__(size)
        self.plic = Plic()
        self.clint = Clint()

    def load_bin(self, path: str | Path, offset: int = 0) -> None:
        """Copy a raw binary image into RAM at ``offset``; bytes past the end are dropped."""
        data = Path(path).read_bytes()
        chunk = data[: max(len(self.memory) - offset, 0)]
        self.memory[offset : offset + len(chunk)] = chunk

    def _device(self, addr: int) -> tuple[Plic | Clint, int] | None:
        if PLIC_BASE <= addr < PLIC_BASE + PLIC_SIZE:
            return self.plic, addr - PLIC_BASE
        if CLINT_BASE <= addr < CLINT_BASE + CLINT_SIZE:
            return self.clint, addr - CLINT_BASE
        return None

    def _read(self, addr: int, width: int) -> int:
        target = self._device(addr)
        if target is None:
            return super()._read(addr, width)
        device, offset = target
        return device.read(offset) & _width_mask(width)

    def _write(self, addr: int, width: int, val: int) -> None:
        target = self._device(addr)
        if target is None:
            super()._write(addr, width, val)
            return
        device, offset = target
        device.write(offset, val & _width_mask(width))

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

    def get_interrupt_level(self) -> bool:
        return self.plic.get_interrupt_level()

    def get_timer_interrupt_level(self) -> bool:
        return self.clint.get_timer_interrupt_level()

    def get_software_interrupt_level(self) -> bool:
        return self.clint.get_software_interrupt_level()

    def tick(self) -> None:
        self.clint.tick()

    def plic_claim(self) -> int:
        return self.plic.claim()

    def plic_complete(self, source_id: int) -> None:
        self.plic.complete(source_id)