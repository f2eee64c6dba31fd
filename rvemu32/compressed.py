"""Execution of RV32C compressed (16-bit) instructions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional

from rvemu32.bus import Bus
from rvemu32.decode import (
    decode_c_addi16sp_imm,
    decode_c_funct2,
    decode_c_funct3,
    decode_c_funct4,
    decode_c_funct6,
    decode_c_lwsp_type,
    decode_c_swsp_type,
    decode_ca_type,
    decode_cb_andi_type,
    decode_cb_branch_type,
    decode_cb_shamt_type,
    decode_ci_shamt_type,
    decode_ci_type,
    decode_ciw_type,
    decode_cj_type,
    decode_cl_type,
    decode_cr_type,
    decode_cs_type,
)
from rvemu32.state import StepResult

if TYPE_CHECKING:
    from rvemu32.cpu import Cpu

_MASK32 = 0xFFFF_FFFF
_ILLEGAL = 2
_BREAKPOINT = 3

# A handler returns None when the instruction completed normally.
Handler = Callable[["Cpu", int, Bus], Optional[StepResult]]

_HANDLERS: dict[tuple[int, int], Handler] = {}


def _op(quadrant: int, funct3: int) -> Callable[[Handler], Handler]:
    def register(handler: Handler) -> Handler:
        _HANDLERS[(quadrant, funct3)] = handler
        return handler

    return register


def _wrap(value: int) -> int:
    return value & _MASK32


def _illegal() -> StepResult:
    return StepResult.trap(_ILLEGAL)


def _shamt_reserved(inst: int) -> bool:
    """shamt[5] must be 0 on RV32C."""
    return bool((inst >> 12) & 0x1)


def _jump(cpu: Cpu, target: int) -> StepResult:
    cpu.pc = _wrap(target)
    return StepResult.jumped()


# --- quadrant 0 -----------------------------------------------------------


@_op(0b00, 0b000)
def _c_addi4spn(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    rd, imm = decode_ciw_type(inst)
    if imm == 0:
        return _illegal()
    cpu.regs[rd] = _wrap(cpu.regs[2] + imm)
    return None


@_op(0b00, 0b010)
def _c_lw(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    rd, rs1, imm = decode_cl_type(inst)
    val = bus.read32(_wrap(cpu.regs[rs1] + imm))
    if rd != 0:
        cpu.regs[rd] = val
    return None


@_op(0b00, 0b110)
def _c_sw(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    rs1, rs2, imm = decode_cs_type(inst)
    bus.write32(_wrap(cpu.regs[rs1] + imm), cpu.regs[rs2])
    return None


# --- quadrant 1 -----------------------------------------------------------


@_op(0b01, 0b000)
def _c_addi(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    rd, imm = decode_ci_type(inst)
    if rd != 0:
        cpu.regs[rd] = _wrap(cpu.regs[rd] + imm)
    return None


@_op(0b01, 0b001)
def _c_jal(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    cpu.regs[1] = _wrap(cpu.pc + 2)
    return _jump(cpu, cpu.pc + decode_cj_type(inst))


@_op(0b01, 0b010)
def _c_li(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    rd, imm = decode_ci_type(inst)
    if rd == 0:
        return _illegal()
    cpu.regs[rd] = imm
    return None


@_op(0b01, 0b011)
def _c_addi16sp_or_lui(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    if (inst >> 7) & 0x1F == 2:
        imm = decode_c_addi16sp_imm(inst)
        if imm == 0:
            return _illegal()
        cpu.regs[2] = _wrap(cpu.regs[2] + imm)
        return None
    rd, imm = decode_ci_type(inst)
    if rd == 0:
        return _illegal()
    cpu.regs[rd] = _wrap(imm << 12)
    return None


_CA_OPS: dict[int, Callable[[int, int], int]] = {
    0b00: lambda a, b: _wrap(a - b),
    0b01: lambda a, b: a ^ b,
    0b10: lambda a, b: a | b,
    0b11: lambda a, b: a & b,
}


@_op(0b01, 0b100)
def _c_misc_alu(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    funct2 = decode_c_funct2(inst)
    if funct2 == 0b10:
        rd, imm = decode_cb_andi_type(inst)
        cpu.regs[rd] &= imm
        return None
    if funct2 == 0b11:
        if decode_c_funct6(inst) != 0b100011:
            return _illegal()
        rd, rs2 = decode_ca_type(inst)
        cpu.regs[rd] = _CA_OPS[(inst >> 5) & 0x3](cpu.regs[rd], cpu.regs[rs2])
        return None
    # c.srli (funct2 == 0) and c.srai (funct2 == 1)
    rd, shamt = decode_cb_shamt_type(inst)
    if _shamt_reserved(inst):
        return _illegal()
    if shamt:
        value = cpu.regs[rd]
        if funct2 == 0b01 and value & 0x8000_0000:
            value -= 1 << 32
        cpu.regs[rd] = _wrap(value >> shamt)
    return None


@_op(0b01, 0b101)
def _c_j(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    return _jump(cpu, cpu.pc + decode_cj_type(inst))


def _branch(cpu: Cpu, inst: int, when_zero: bool) -> StepResult | None:
    rs1, imm = decode_cb_branch_type(inst)
    if (cpu.regs[rs1] == 0) == when_zero:
        return _jump(cpu, cpu.pc + imm)
    return None


@_op(0b01, 0b110)
def _c_beqz(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    return _branch(cpu, inst, when_zero=True)


@_op(0b01, 0b111)
def _c_bnez(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    return _branch(cpu, inst, when_zero=False)


# --- quadrant 2 -----------------------------------------------------------


@_op(0b10, 0b000)
def _c_slli(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    rd, shamt = decode_ci_shamt_type(inst)
    if rd == 0 or _shamt_reserved(inst):
        return _illegal()
    if shamt:
        cpu.regs[rd] = _wrap(cpu.regs[rd] << shamt)
    return None


@_op(0b10, 0b010)
def _c_lwsp(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    rd, imm = decode_c_lwsp_type(inst)
    if rd == 0:
        return _illegal()
    cpu.regs[rd] = bus.read32(_wrap(cpu.regs[2] + imm))
    return None


@_op(0b10, 0b110)
def _c_swsp(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    rs2, imm = decode_c_swsp_type(inst)
    bus.write32(_wrap(cpu.regs[2] + imm), cpu.regs[rs2])
    return None


@_op(0b10, 0b100)
def _c_register_ops(cpu: Cpu, inst: int, bus: Bus) -> StepResult | None:
    rd, rs2 = decode_cr_type(inst)
    funct4 = decode_c_funct4(inst)
    if funct4 == 0b1000:
        if rd == 0:
            return _illegal()
        if rs2 == 0:  # c.jr
            return _jump(cpu, cpu.regs[rd] & ~1)
        cpu.regs[rd] = cpu.regs[rs2]  # c.mv
        return None
    if funct4 == 0b1001:
        if rd == 0 and rs2 == 0:
            return StepResult.trap(_BREAKPOINT)
        if rs2 == 0:  # c.jalr
            next_pc = _wrap(cpu.pc + 2)
            result = _jump(cpu, cpu.regs[rd] & ~1)
            cpu.regs[1] = next_pc
            return result
        cpu.regs[rd] = _wrap(cpu.regs[rd] + cpu.regs[rs2])  # c.add
        return None
    return _illegal()


def execute_compressed(cpu: Cpu, inst: int, quadrant: int, bus: Bus) -> StepResult:
    """Execute one 16-bit instruction from ``quadrant`` against ``cpu`` and ``bus``."""
    inst &= 0xFFFF
    handler = _HANDLERS.get((quadrant, decode_c_funct3(inst)))
    if handler is None:
        return _illegal()
    result = handler(cpu, inst, bus)
    return StepResult.ok() if result is None else result