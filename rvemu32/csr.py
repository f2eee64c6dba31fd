"""Machine-mode control and status registers."""

from dataclasses import dataclass, field

_MASK32 = 0xFFFF_FFFF

MSTATUS = 0x300
MISA = 0x301
MISA_VALUE = 0x40101104  # RV32 with I, M, C and U
MSTATUS_WRITE_MASK = 0x807E1888 | 0x0000000F
PMPADDR_BASE = 0x3B0

_FIELDS = {
    0x180: "satp",
    0x304: "mie",
    0x305: "mtvec",
    0x306: "mcounteren",
    0x340: "mscratch",
    0x341: "mepc",
    0x342: "mcause",
    0x343: "mtval",
    0x344: "mip",
    0x3A0: "pmpcfg0",
}

_HARDWIRED_ZERO = (0x302, 0x303, 0x744, 0x7A5)
_ZERO_RANGES = (
    range(0x7A0, 0x7A4),
    range(0x320, 0x340),
    range(0xB00, 0xB20),
    range(0xB80, 0xBA0),
)
_READ_ONLY_ZERO_RANGES = (range(0xC00, 0xC20), range(0xC80, 0xCA0))
_ID_REGISTERS = (0xF11, 0xF12, 0xF13, 0xF14)
_PMPADDR = range(PMPADDR_BASE, PMPADDR_BASE + 4)


class CsrAccessError(Exception):
    """Access to a CSR that does not exist or may not be written."""

    def __init__(self, addr: int, action: str) -> None:
        super().__init__(f"cannot {action} CSR 0x{addr:03x}")
        self.addr = addr


def _in_any(addr: int, ranges) -> bool:
    return any(addr in r for r in ranges)


@dataclass
class Csr:
    """The subset of machine CSRs this hart implements."""

    mstatus: int = 0
    mtvec: int = 0
    mie: int = 0
    mepc: int = 0
    mcause: int = 0
    mtval: int = 0
    mip: int = 0
    mscratch: int = 0
    mcounteren: int = 0
    pmpcfg0: int = 0
    pmpaddr: list[int] = field(default_factory=lambda: [0] * 4)
    satp: int = 0

    def read(self, addr: int) -> int:
        """Return the value of a CSR; raise CsrAccessError if unknown."""
        if addr == MSTATUS:
            return self.mstatus
        if addr == MISA:
            return MISA_VALUE
        if addr in _FIELDS:
            return getattr(self, _FIELDS[addr])
        if addr in _PMPADDR:
            return self.pmpaddr[addr - PMPADDR_BASE]
        if (
            addr in _HARDWIRED_ZERO
            or addr in _ID_REGISTERS
            or _in_any(addr, _ZERO_RANGES)
            or _in_any(addr, _READ_ONLY_ZERO_RANGES)
        ):
            return 0
        raise CsrAccessError(addr, "read")

    def write(self, addr: int, val: int) -> None:
        """Write a CSR; raise CsrAccessError if it is unknown or read-only."""
        if (addr >> 10) & 0b11 == 0b11:
            raise CsrAccessError(addr, "write")
        val &= _MASK32

        if addr == MSTATUS:
            if (val >> 11) & 0b11 in (1, 2):
                # Only Machine and User are supported for MPP.
                val &= ~(0b11 << 11)
            self.mstatus = (self.mstatus & ~MSTATUS_WRITE_MASK) | (
                val & MSTATUS_WRITE_MASK
            )
        elif addr in _FIELDS:
            setattr(self, _FIELDS[addr], val)
        elif addr in _PMPADDR:
            self.pmpaddr[addr - PMPADDR_BASE] = val
        elif addr == MISA or addr in _HARDWIRED_ZERO or _in_any(addr, _ZERO_RANGES):
            pass
        else:
            raise CsrAccessError(addr, "write")