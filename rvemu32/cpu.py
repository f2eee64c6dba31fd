"""The RV32IMC hart: fetch, interrupt checks, execution and trap entry."""

from __future__ import annotations

from typing import Callable

from rvemu32.bus import Bus
from rvemu32.compressed import execute_compressed
from rvemu32.csr import Csr, CsrAccessError
from rvemu32.decode import (
    decode_b_type,
    decode_funct3,
    decode_funct7,
    decode_i_type,
    decode_j_type,
    decode_opcode,
    decode_quadrant,
    decode_r_type,
    decode_s_type,
    decode_u_type,
)
from rvemu32.state import PrivilegeMode, StepResult

_MASK32 = 0xFFFF_FFFF

ILLEGAL_INSTRUCTION = 2
BREAKPOINT = 3

MSTATUS_MIE = 1 << 3
MSTATUS_MPIE = 1 << 7
MSTATUS_MPP_SHIFT = 11

MIP_MSIP = 1 << 3
MIP_MTIP = 1 << 7
MIP_MEIP = 1 << 11

MACHINE_SOFTWARE_INTERRUPT = 0x8000_0003
MACHINE_TIMER_INTERRUPT = 0x8000_0007
MACHINE_EXTERNAL_INTERRUPT = 0x8000_000B

_ECALL_CAUSE = {
    PrivilegeMode.USER: 8,
    PrivilegeMode.SUPERVISOR: 9,
    PrivilegeMode.MACHINE: 11,
}


def _signed(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x8000_0000 else value


def _sign_extend(value: int, bits: int) -> int:
    sign = 1 << (bits - 1)
    return ((value & ((1 << bits) - 1)) ^ sign) - sign


def _div(a: int, b: int) -> int:
    if b == 0:
        return _MASK32
    sa, sb = _signed(a), _signed(b)
    quotient = abs(sa) // abs(sb)
    if (sa < 0) != (sb < 0):
        quotient = -quotient
    return quotient & _MASK32


def _rem(a: int, b: int) -> int:
    if b == 0:
        return a
    sa, sb = _signed(a), _signed(b)
    quotient = _signed(_div(a, b))
    if sa == -(1 << 31) and sb == -1:
        return 0
    return (sa - quotient * sb) & _MASK32


_REG_OPS: dict[tuple[int, int], Callable[[int, int], int]] = {
    (0b000, 0b0000000): lambda a, b: a + b,
    (0b000, 0b0100000): lambda a, b: a - b,
    (0b000, 0b0000001): lambda a, b: a * b,
    (0b001, 0b0000000): lambda a, b: a << (b & 0x1F),
    (0b001, 0b0000001): lambda a, b: (_signed(a) * _signed(b)) >> 32,
    (0b010, 0b0000000): lambda a, b: int(_signed(a) < _signed(b)),
    (0b010, 0b0000001): lambda a, b: (_signed(a) * b) >> 32,
    (0b011, 0b0000000): lambda a, b: int(a < b),
    (0b011, 0b0000001): lambda a, b: (a * b) >> 32,
    (0b100, 0b0000000): lambda a, b: a ^ b,
    (0b100, 0b0000001): _div,
    (0b101, 0b0000000): lambda a, b: a >> (b & 0x1F),
    (0b101, 0b0100000): lambda a, b: _signed(a) >> (b & 0x1F),
    (0b101, 0b0000001): lambda a, b: _MASK32 if b == 0 else a // b,
    (0b110, 0b0000000): lambda a, b: a | b,
    (0b110, 0b0000001): _rem,
    (0b111, 0b0000000): lambda a, b: a & b,
    (0b111, 0b0000001): lambda a, b: a if b == 0 else a % b,
}

_BRANCHES: dict[int, Callable[[int, int], bool]] = {
    0b000: lambda a, b: a == b,
    0b001: lambda a, b: a != b,
    0b100: lambda a, b: _signed(a) < _signed(b),
    0b101: lambda a, b: _signed(a) >= _signed(b),
    0b110: lambda a, b: a < b,
    0b111: lambda a, b: a >= b,
}

_IMM_OPS: dict[int, Callable[[int, int], int]] = {
    0b000: lambda a, imm: a + imm,
    0b001: lambda a, imm: a << (imm & 0x1F),
    0b010: lambda a, imm: int(_signed(a) < _signed(imm)),
    0b011: lambda a, imm: int(a < imm),
    0b100: lambda a, imm: a ^ imm,
    0b110: lambda a, imm: a | imm,
    0b111: lambda a, imm: a & imm,
}


class Cpu:
    """A single RV32IMC hart running in machine or user mode."""

    def __init__(self, pc: int = 0) -> None:
        self.regs: list[int] = [0] * 32
        self.pc = pc & _MASK32
        self.csr = Csr()
        self.mode = PrivilegeMode.MACHINE

    # --- public interface -------------------------------------------------

    def step(self, bus: Bus) -> StepResult:
        """Advance the clock, take a pending interrupt or execute one instruction."""
        bus.tick()

        interrupt = self._check_interrupts(bus)
        if interrupt is not None:
            return self.handle_trap(interrupt, 0)

        inst, quadrant = self._fetch(bus)
        if quadrant == 0b11:
            result = self._execute32(inst, bus)
        else:
            result = execute_compressed(self, inst, quadrant, bus)

        if result.is_ok:
            self.pc = (self.pc + (4 if quadrant == 0b11 else 2)) & _MASK32
        elif result.is_trap:
            mtval = inst if result.code == ILLEGAL_INSTRUCTION else 0
            self.handle_trap(result.code, mtval)
        return result

    def dump_registers(self) -> None:
        """Print the general registers, pc and the main trap CSRs."""
        for index, value in enumerate(self.regs):
            print(f"x{index:02}: 0x{value:08x}")
        print(f"pc : 0x{self.pc:08x}")
        print(f"mstatus: 0x{self.csr.mstatus:08x}")
        print(f"mtvec  : 0x{self.csr.mtvec:08x}")
        print(f"mepc   : 0x{self.csr.mepc:08x}")
        print(f"mcause : 0x{self.csr.mcause:08x}")
        print(f"mtval  : 0x{self.csr.mtval:08x}")

    def claim_interrupt(self, bus: Bus) -> int:
        """Claim an external interrupt from the bus's PLIC."""
        return bus.plic_claim()

    def complete_interrupt(self, bus: Bus, source_id: int) -> None:
        """Tell the bus's PLIC that ``source_id`` has been handled."""
        bus.plic_complete(source_id)

    def handle_trap(self, exception_code: int, mtval: int) -> StepResult:
        """Enter machine mode and jump to the trap vector."""
        csr = self.csr
        csr.mepc = self.pc
        csr.mcause = exception_code & _MASK32
        csr.mtval = mtval & _MASK32

        mie = (csr.mstatus >> 3) & 1
        status = csr.mstatus & ~MSTATUS_MPIE & ~MSTATUS_MIE
        status |= mie << 7
        status &= ~(0b11 << MSTATUS_MPP_SHIFT)
        status |= int(self.mode) << MSTATUS_MPP_SHIFT
        csr.mstatus = status & _MASK32

        self.mode = PrivilegeMode.MACHINE

        is_interrupt = (exception_code >> 31) & 1
        vector_mode = csr.mtvec & 0b11
        base = csr.mtvec & ~0b11 & _MASK32
        if is_interrupt and vector_mode == 1:
            self.pc = (base + 4 * (exception_code & 0x7FFF_FFFF)) & _MASK32
        else:
            self.pc = base
        return StepResult.trap(exception_code)

    # --- fetch and interrupts --------------------------------------------

    def _fetch(self, bus: Bus) -> tuple[int, int]:
        low = bus.read16(self.pc)
        quadrant = decode_quadrant(low)
        if quadrant == 0b11:
            high = bus.read16((self.pc + 2) & _MASK32)
            return (high << 16) | low, quadrant
        return low, quadrant

    def _check_interrupts(self, bus: Bus) -> int | None:
        csr = self.csr
        if not csr.mstatus & MSTATUS_MIE:
            return None

        for level, bit in (
            (bus.get_interrupt_level(), MIP_MEIP),
            (bus.get_timer_interrupt_level(), MIP_MTIP),
            (bus.get_software_interrupt_level(), MIP_MSIP),
        ):
            csr.mip = (csr.mip | bit) if level else (csr.mip & ~bit)

        pending = csr.mip & csr.mie
        # Priority: external, then software, then timer.
        for bit, code in (
            (MIP_MEIP, MACHINE_EXTERNAL_INTERRUPT),
            (MIP_MSIP, MACHINE_SOFTWARE_INTERRUPT),
            (MIP_MTIP, MACHINE_TIMER_INTERRUPT),
        ):
            if pending & bit:
                return code
        return None

    # --- 32-bit execution -------------------------------------------------

    def _set(self, rd: int, value: int) -> None:
        if rd:
            self.regs[rd] = value & _MASK32

    def _execute32(self, inst: int, bus: Bus) -> StepResult:
        handler = self._OPCODES.get(decode_opcode(inst))
        if handler is None:
            return StepResult.trap(ILLEGAL_INSTRUCTION)
        return handler(self, inst, bus)

    def _lui(self, inst: int, bus: Bus) -> StepResult:
        rd, imm = decode_u_type(inst)
        self._set(rd, imm)
        return StepResult.ok()

    def _auipc(self, inst: int, bus: Bus) -> StepResult:
        rd, imm = decode_u_type(inst)
        self._set(rd, self.pc + imm)
        return StepResult.ok()

    def _jal(self, inst: int, bus: Bus) -> StepResult:
        rd, imm = decode_j_type(inst)
        self._set(rd, self.pc + 4)
        self.pc = (self.pc + imm) & _MASK32
        return StepResult.jumped()

    def _jalr(self, inst: int, bus: Bus) -> StepResult:
        rd, rs1, imm = decode_i_type(inst)
        target = (self.regs[rs1] + imm) & ~1 & _MASK32
        self._set(rd, self.pc + 4)
        self.pc = target
        return StepResult.jumped()

    def _op_imm(self, inst: int, bus: Bus) -> StepResult:
        rd, rs1, imm = decode_i_type(inst)
        funct3 = decode_funct3(inst)
        value = self.regs[rs1]
        if funct3 == 0b101:
            funct7 = decode_funct7(inst)
            shamt = imm & 0x1F
            if funct7 == 0b0000000:
                self._set(rd, value >> shamt)
            elif funct7 == 0b0100000:
                self._set(rd, _signed(value) >> shamt)
            else:
                return StepResult.trap(ILLEGAL_INSTRUCTION)
            return StepResult.ok()
        self._set(rd, _IMM_OPS[funct3](value, imm))
        return StepResult.ok()

    def _branch(self, inst: int, bus: Bus) -> StepResult:
        compare = _BRANCHES.get(decode_funct3(inst))
        if compare is None:
            return StepResult.trap(ILLEGAL_INSTRUCTION)
        rs1, rs2, imm = decode_b_type(inst)
        if compare(self.regs[rs1], self.regs[rs2]):
            self.pc = (self.pc + imm) & _MASK32
            return StepResult.jumped()
        return StepResult.ok()

    def _load(self, inst: int, bus: Bus) -> StepResult:
        rd, rs1, imm = decode_i_type(inst)
        addr = (self.regs[rs1] + imm) & _MASK32
        funct3 = decode_funct3(inst)
        if funct3 == 0b000:
            value = _sign_extend(bus.read8(addr), 8)
        elif funct3 == 0b001:
            value = _sign_extend(bus.read16(addr), 16)
        elif funct3 == 0b010:
            value = bus.read32(addr)
        elif funct3 == 0b100:
            value = bus.read8(addr)
        elif funct3 == 0b101:
            value = bus.read16(addr)
        else:
            return StepResult.trap(ILLEGAL_INSTRUCTION)
        self._set(rd, value)
        return StepResult.ok()

    def _store(self, inst: int, bus: Bus) -> StepResult:
        rs1, rs2, imm = decode_s_type(inst)
        addr = (self.regs[rs1] + imm) & _MASK32
        value = self.regs[rs2]
        funct3 = decode_funct3(inst)
        if funct3 == 0b000:
            bus.write8(addr, value & 0xFF)
        elif funct3 == 0b001:
            bus.write16(addr, value & 0xFFFF)
        elif funct3 == 0b010:
            bus.write32(addr, value)
        else:
            return StepResult.trap(ILLEGAL_INSTRUCTION)
        return StepResult.ok()

    def _op_reg(self, inst: int, bus: Bus) -> StepResult:
        op = _REG_OPS.get((decode_funct3(inst), decode_funct7(inst)))
        if op is None:
            return StepResult.trap(ILLEGAL_INSTRUCTION)
        rd, rs1, rs2 = decode_r_type(inst)
        self._set(rd, op(self.regs[rs1], self.regs[rs2]))
        return StepResult.ok()

    def _fence(self, inst: int, bus: Bus) -> StepResult:
        if decode_funct3(inst) in (0b000, 0b001):
            return StepResult.ok()
        return StepResult.trap(ILLEGAL_INSTRUCTION)

    def _mret(self) -> StepResult:
        csr = self.csr
        self.pc = csr.mepc
        self.mode = PrivilegeMode((csr.mstatus >> MSTATUS_MPP_SHIFT) & 0b11)
        mpie = (csr.mstatus >> 7) & 1
        status = (csr.mstatus & ~MSTATUS_MIE) | (mpie << 3)
        status |= MSTATUS_MPIE
        status &= ~(0b11 << MSTATUS_MPP_SHIFT)
        csr.mstatus = status & _MASK32
        return StepResult.jumped()

    def _system(self, inst: int, bus: Bus) -> StepResult:
        funct3 = decode_funct3(inst)
        if funct3 == 0b000:
            funct12 = (inst >> 20) & 0xFFF
            if funct12 == 0b000000000000:
                return StepResult.trap(_ECALL_CAUSE[self.mode])
            if funct12 == 0b000000000001:
                return StepResult.trap(BREAKPOINT)
            if funct12 == 0b001100000010:
                return self._mret()
            if funct12 == 0b000100000101:
                return StepResult.ok()  # wfi
            return StepResult.trap(ILLEGAL_INSTRUCTION)
        if funct3 == 0b100:
            return StepResult.trap(ILLEGAL_INSTRUCTION)
        return self._csr_op(inst, funct3)

    def _csr_op(self, inst: int, funct3: int) -> StepResult:
        rd = (inst >> 7) & 0x1F
        field = (inst >> 15) & 0x1F
        addr = (inst >> 20) & 0xFFF
        operand = field if funct3 & 0b100 else self.regs[field]
        kind = funct3 & 0b011
        try:
            if kind == 0b01:
                old = self.csr.read(addr) if rd != 0 else 0
                self.csr.write(addr, operand)
            else:
                old = self.csr.read(addr)
                if field != 0:
                    new = old | operand if kind == 0b10 else old & ~operand
                    self.csr.write(addr, new & _MASK32)
        except CsrAccessError:
            return StepResult.trap(ILLEGAL_INSTRUCTION)
        self._set(rd, old)
        return StepResult.ok()

    _OPCODES: dict[int, Callable[[Cpu, int, Bus], StepResult]] = {
        0b0110111: _lui,
        0b0010111: _auipc,
        0b1101111: _jal,
        0b1100111: _jalr,
        0b0010011: _op_imm,
        0b1100011: _branch,
        0b0000011: _load,
        0b0100011: _store,
        0b0110011: _op_reg,
        0b0001111: _fence,
        0b1110011: _system,
    }