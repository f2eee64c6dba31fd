"""Field extraction for 32-bit and compressed 16-bit RISC-V instructions.

Register numbers are returned as ints; immediates come back as unsigned
32-bit values, sign-extended where the encoding is signed.
"""

_MASK32 = 0xFFFF_FFFF
_MASK16 = 0xFFFF

# Compressed 3-bit register fields address x8..x15.
_CREG_BASE = 8


def _sign_extend(value: int, bits: int) -> int:
    """Sign-extend a ``bits``-wide field to an unsigned 32-bit value."""
    sign = 1 << (bits - 1)
    value &= (1 << bits) - 1
    return ((value ^ sign) - sign) & _MASK32


def _u32(inst: int) -> int:
    return inst & _MASK32


def _u16(inst: int) -> int:
    return inst & _MASK16


def _bits(inst: int, shift: int, mask: int) -> int:
    return (inst >> shift) & mask


# --- 32-bit formats -------------------------------------------------------


def decode_i_type(inst: int) -> tuple[int, int, int]:
    """Return ``(rd, rs1, imm)`` of an I-type instruction."""
    inst = _u32(inst)
    return _bits(inst, 7, 0x1F), _bits(inst, 15, 0x1F), _sign_extend(inst >> 20, 12)


def decode_u_type(inst: int) -> tuple[int, int]:
    """Return ``(rd, imm)`` of a U-type instruction."""
    inst = _u32(inst)
    return _bits(inst, 7, 0x1F), inst & 0xFFFF_F000


def decode_j_type(inst: int) -> tuple[int, int]:
    """Return ``(rd, imm)`` of a J-type instruction."""
    inst = _u32(inst)
    imm = (
        (_bits(inst, 31, 0x1) << 20)
        | (_bits(inst, 12, 0xFF) << 12)
        | (_bits(inst, 20, 0x1) << 11)
        | (_bits(inst, 21, 0x3FF) << 1)
    )
    return _bits(inst, 7, 0x1F), _sign_extend(imm, 21)


def decode_b_type(inst: int) -> tuple[int, int, int]:
    """Return ``(rs1, rs2, imm)`` of a B-type instruction."""
    inst = _u32(inst)
    imm = (
        (_bits(inst, 31, 0x1) << 12)
        | (_bits(inst, 7, 0x1) << 11)
        | (_bits(inst, 25, 0x3F) << 5)
        | (_bits(inst, 8, 0xF) << 1)
    )
    return _bits(inst, 15, 0x1F), _bits(inst, 20, 0x1F), _sign_extend(imm, 13)


def decode_s_type(inst: int) -> tuple[int, int, int]:
    """Return ``(rs1, rs2, imm)`` of an S-type instruction."""
    inst = _u32(inst)
    imm = (_bits(inst, 25, 0x7F) << 5) | _bits(inst, 7, 0x1F)
    return _bits(inst, 15, 0x1F), _bits(inst, 20, 0x1F), _sign_extend(imm, 12)


def decode_r_type(inst: int) -> tuple[int, int, int]:
    """Return ``(rd, rs1, rs2)`` of an R-type instruction."""
    inst = _u32(inst)
    return _bits(inst, 7, 0x1F), _bits(inst, 15, 0x1F), _bits(inst, 20, 0x1F)


# --- 16-bit compressed formats -------------------------------------------


def decode_ci_type(inst: int) -> tuple[int, int]:
    """Return ``(rd, imm)`` of a CI-type instruction with a signed 6-bit imm."""
    inst = _u16(inst)
    imm = (_bits(inst, 12, 0x1) << 5) | _bits(inst, 2, 0x1F)
    return _bits(inst, 7, 0x1F), _sign_extend(imm, 6)


def decode_ci_shamt_type(inst: int) -> tuple[int, int]:
    """Return ``(rd, shamt)`` of a CI-type shift."""
    inst = _u16(inst)
    shamt = (_bits(inst, 12, 0x1) << 5) | _bits(inst, 2, 0x1F)
    return _bits(inst, 7, 0x1F), shamt


def decode_ciw_type(inst: int) -> tuple[int, int]:
    """Return ``(rd, nzuimm)`` of C.ADDI4SPN."""
    inst = _u16(inst)
    nzuimm = (
        (_bits(inst, 11, 0x3) << 4)
        | (_bits(inst, 7, 0xF) << 6)
        | (_bits(inst, 6, 0x1) << 2)
        | (_bits(inst, 5, 0x1) << 3)
    )
    return _CREG_BASE + _bits(inst, 2, 0x7), nzuimm


def _cl_cs_offset(inst: int) -> int:
    return (
        (_bits(inst, 5, 0x1) << 6)
        | (_bits(inst, 10, 0x7) << 3)
        | (_bits(inst, 6, 0x1) << 2)
    )


def decode_cl_type(inst: int) -> tuple[int, int, int]:
    """Return ``(rd, rs1, imm)`` of C.LW."""
    inst = _u16(inst)
    return (
        _CREG_BASE + _bits(inst, 2, 0x7),
        _CREG_BASE + _bits(inst, 7, 0x7),
        _cl_cs_offset(inst),
    )


def decode_cs_type(inst: int) -> tuple[int, int, int]:
    """Return ``(rs1, rs2, imm)`` of C.SW."""
    inst = _u16(inst)
    return (
        _CREG_BASE + _bits(inst, 7, 0x7),
        _CREG_BASE + _bits(inst, 2, 0x7),
        _cl_cs_offset(inst),
    )


def decode_cj_type(inst: int) -> int:
    """Return the signed jump offset of C.J / C.JAL."""
    inst = _u16(inst)
    imm = (
        (_bits(inst, 12, 0x1) << 11)
        | (_bits(inst, 8, 0x1) << 10)
        | (_bits(inst, 9, 0x3) << 8)
        | (_bits(inst, 6, 0x1) << 7)
        | (_bits(inst, 7, 0x1) << 6)
        | (_bits(inst, 2, 0x1) << 5)
        | (_bits(inst, 11, 0x1) << 4)
        | (_bits(inst, 3, 0x7) << 1)
    )
    return _sign_extend(imm, 12)


def decode_c_addi16sp_imm(inst: int) -> int:
    """Return the signed stack adjustment of C.ADDI16SP."""
    inst = _u16(inst)
    imm = (
        (_bits(inst, 12, 0x1) << 9)
        | (_bits(inst, 3, 0x3) << 7)
        | (_bits(inst, 5, 0x1) << 6)
        | (_bits(inst, 2, 0x1) << 5)
        | (_bits(inst, 6, 0x1) << 4)
    )
    return _sign_extend(imm, 10)


def decode_cb_shamt_type(inst: int) -> tuple[int, int]:
    """Return ``(rd, shamt)`` of C.SRLI / C.SRAI."""
    inst = _u16(inst)
    shamt = (_bits(inst, 12, 0x1) << 5) | _bits(inst, 2, 0x1F)
    return _CREG_BASE + _bits(inst, 7, 0x7), shamt


def decode_cb_andi_type(inst: int) -> tuple[int, int]:
    """Return ``(rd, imm)`` of C.ANDI."""
    inst = _u16(inst)
    imm = (_bits(inst, 12, 0x1) << 5) | _bits(inst, 2, 0x1F)
    return _CREG_BASE + _bits(inst, 7, 0x7), _sign_extend(imm, 6)


def decode_ca_type(inst: int) -> tuple[int, int]:
    """Return ``(rd, rs2)`` of a CA-type register-register operation."""
    inst = _u16(inst)
    return _CREG_BASE + _bits(inst, 7, 0x7), _CREG_BASE + _bits(inst, 2, 0x7)


def decode_cb_branch_type(inst: int) -> tuple[int, int]:
    """Return ``(rs1, imm)`` of C.BEQZ / C.BNEZ."""
    inst = _u16(inst)
    imm = (
        (_bits(inst, 12, 0x1) << 8)
        | (_bits(inst, 5, 0x3) << 6)
        | (_bits(inst, 2, 0x1) << 5)
        | (_bits(inst, 10, 0x3) << 3)
        | (_bits(inst, 3, 0x3) << 1)
    )
    return _CREG_BASE + _bits(inst, 7, 0x7), _sign_extend(imm, 9)


def decode_c_lwsp_type(inst: int) -> tuple[int, int]:
    """Return ``(rd, imm)`` of C.LWSP."""
    inst = _u16(inst)
    imm = (
        (_bits(inst, 2, 0x3) << 6)
        | (_bits(inst, 12, 0x1) << 5)
        | (_bits(inst, 4, 0x7) << 2)
    )
    return _bits(inst, 7, 0x1F), imm


def decode_c_swsp_type(inst: int) -> tuple[int, int]:
    """Return ``(rs2, imm)`` of C.SWSP."""
    inst = _u16(inst)
    imm = (_bits(inst, 7, 0x3) << 6) | (_bits(inst, 9, 0xF) << 2)
    return _bits(inst, 2, 0x1F), imm


def decode_cr_type(inst: int) -> tuple[int, int]:
    """Return ``(rs1_rd, rs2)`` of a CR-type instruction."""
    inst = _u16(inst)
    return _bits(inst, 7, 0x1F), _bits(inst, 2, 0x1F)


# --- opcode and function fields ------------------------------------------


def decode_opcode(inst: int) -> int:
    return _u32(inst) & 0x7F


def decode_funct3(inst: int) -> int:
    return _bits(_u32(inst), 12, 0x7)


def decode_funct7(inst: int) -> int:
    return _bits(_u32(inst), 25, 0x7F)


def decode_quadrant(inst: int) -> int:
    return _u16(inst) & 0x3


def decode_c_funct2(inst: int) -> int:
    return _bits(_u16(inst), 10, 0x3)


def decode_c_funct3(inst: int) -> int:
    return _bits(_u16(inst), 13, 0x7)


def decode_c_funct4(inst: int) -> int:
    return _bits(_u16(inst), 12, 0xF)


def decode_c_funct6(inst: int) -> int:
    return _bits(_u16(inst), 10, 0x3F)