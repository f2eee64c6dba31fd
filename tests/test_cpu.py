from rvemu32.bus import MockBus
from rvemu32.cpu import Cpu
from rvemu32.plic import Plic
from rvemu32.state import PrivilegeMode

PLIC_BASE = 0x0C00_0000
PLIC_SIZE = 0x0040_0000


class InterruptTestBus(MockBus):
    def __init__(self):
        super().__init__()
        self.plic = Plic()
        self.timer_interrupt = False

    def _plic_offset(self, addr):
        if PLIC_BASE <= addr < PLIC_BASE + PLIC_SIZE:
            return addr - PLIC_BASE
        return None

    def read8(self, addr):
        offset = self._plic_offset(addr)
        return self.plic.read(offset) & 0xFF if offset is not None else super().read8(addr)

    def read16(self, addr):
        offset = self._plic_offset(addr)
        return self.plic.read(offset) & 0xFFFF if offset is not None else super().read16(addr)

    def read32(self, addr):
        offset = self._plic_offset(addr)
        return self.plic.read(offset) if offset is not None else super().read32(addr)

    def write8(self, addr, val):
        offset = self._plic_offset(addr)
        if offset is not None:
            self.plic.write(offset, val)
        else:
            super().write8(addr, val)

    def write16(self, addr, val):
        offset = self._plic_offset(addr)
        if offset is not None:
            self.plic.write(offset, val)
        else:
            super().write16(addr, val)

    def write32(self, addr, val):
        offset = self._plic_offset(addr)
        if offset is not None:
            self.plic.write(offset, val)
        else:
            super().write32(addr, val)

    def get_interrupt_level(self):
        return self.plic.get_interrupt_level()

    def get_timer_interrupt_level(self):
        return self.timer_interrupt


def _step16(pc, inst, regs=None):
    cpu = Cpu(pc)
    bus = MockBus()
    for index, value in (regs or {}).items():
        cpu.regs[index] = value
    bus.write_inst16(pc, inst)
    result = cpu.step(bus)
    return cpu, result


# --- compressed jumps ------------------------------------------------------


def test_c_jal_positive():
    cpu, _ = _step16(0x200, 0x2095)
    assert cpu.pc == 0x200 + 100
    assert cpu.regs[1] == 0x202


def test_c_jal_negative():
    cpu, _ = _step16(0x200, 0x3F71)
    assert cpu.pc == 0x200 - 100
    assert cpu.regs[1] == 0x202


def test_c_jal_max_forward():
    cpu, _ = _step16(0x1000, 0x2FFD)
    assert cpu.pc == 0x1000 + 2046
    assert cpu.regs[1] == 0x1002


def test_c_jal_max_backward():
    cpu, _ = _step16(0x1000, 0x3001)
    assert cpu.pc == 0x1000 - 2048
    assert cpu.regs[1] == 0x1002


def test_c_j_positive():
    cpu, result = _step16(0x200, 0xA095)
    assert cpu.pc == 0x200 + 100
    assert cpu.regs[1] == 0
    assert result.is_jumped


def test_c_j_negative():
    cpu, _ = _step16(0x200, 0xBF71)
    assert cpu.pc == 0x200 - 100
    assert cpu.regs[1] == 0


def test_c_beqz_taken():
    cpu, _ = _step16(0x200, 0xC409, {8: 0})
    assert cpu.pc == 0x200 + 10


def test_c_beqz_not_taken():
    cpu, result = _step16(0x200, 0xC409, {8: 1})
    assert cpu.pc == 0x202
    assert result.is_ok


def test_c_beqz_negative():
    cpu, _ = _step16(0x200, 0xD87D, {8: 0})
    assert cpu.pc == 0x200 - 10


def test_c_bnez_taken():
    cpu, _ = _step16(0x200, 0xE409, {8: 1})
    assert cpu.pc == 0x200 + 10


def test_c_bnez_not_taken():
    cpu, _ = _step16(0x200, 0xE409, {8: 0})
    assert cpu.pc == 0x202


def test_c_bnez_negative():
    cpu, _ = _step16(0x200, 0xF87D, {8: 1})
    assert cpu.pc == 0x200 - 10


def test_c_jr():
    cpu, _ = _step16(0x200, 0x8082, {1: 0x400})
    assert cpu.pc == 0x400

    cpu, _ = _step16(0x300, 0x8282, {5: 0x601})
    assert cpu.pc == 0x600


def test_c_jalr():
    cpu, _ = _step16(0x200, 0x9282, {5: 0x400})
    assert cpu.pc == 0x400
    assert cpu.regs[1] == 0x202

    cpu, _ = _step16(0x300, 0x9302, {6: 0x501})
    assert cpu.pc == 0x500
    assert cpu.regs[1] == 0x302


def test_c_ebreak():
    cpu = Cpu(0x0)
    bus = MockBus()
    bus.write16(0, 0x9002)
    result = cpu.step(bus)
    assert result.is_trap
    assert result.code == 3


# --- interrupts --------------------------------------------------------------


def test_external_interrupt():
    cpu = Cpu(0x0)
    bus = InterruptTestBus()
    cpu.csr.write(0x300, 1 << 3)
    cpu.csr.write(0x304, 1 << 11)
    cpu.csr.write(0x305, 0x100)
    bus.write_inst32(0, 0x00000013)

    bus.plic.enabled |= 1 << 1
    bus.plic.priorities[1] = 1
    bus.plic.set_interrupt(1)

    result = cpu.step(bus)

    assert result.is_trap and result.code == 0x8000_000B
    assert cpu.pc == 0x100
    assert cpu.csr.read(0x341) == 0
    assert cpu.csr.read(0x342) == 0x8000_000B
    assert (cpu.csr.read(0x300) >> 3) & 1 == 0
    assert (cpu.csr.read(0x300) >> 7) & 1 == 1


def test_timer_interrupt():
    cpu = Cpu(0x0)
    bus = InterruptTestBus()
    cpu.csr.write(0x300, 1 << 3)
    cpu.csr.write(0x304, 1 << 7)
    cpu.csr.write(0x305, 0x200)
    bus.write_inst32(0, 0x00000013)
    bus.timer_interrupt = True

    result = cpu.step(bus)

    assert result.is_trap and result.code == 0x8000_0007
    assert cpu.pc == 0x200
    assert cpu.csr.read(0x342) == 0x8000_0007


def test_interrupt_priority():
    cpu = Cpu(0x0)
    bus = InterruptTestBus()
    cpu.csr.write(0x300, 1 << 3)
    cpu.csr.write(0x304, (1 << 11) | (1 << 7))
    cpu.csr.write(0x305, 0x100)
    bus.write_inst32(0, 0x00000013)

    bus.timer_interrupt = True
    bus.plic.enabled |= 1 << 1
    bus.plic.priorities[1] = 1
    bus.plic.set_interrupt(1)

    result = cpu.step(bus)

    assert result.is_trap and result.code == 0x8000_000B
    assert cpu.csr.read(0x342) == 0x8000_000B


def test_full_interrupt_handler_flow():
    cpu = Cpu(0x0)
    bus = InterruptTestBus()
    cpu.csr.write(0x300, 1 << 3)
    cpu.csr.write(0x304, 1 << 11)
    cpu.csr.write(0x305, 0x100)

    bus.write_inst32(0x0, 0x00000013)
    bus.write_inst32(0x4, 0x00100013)
    bus.write_inst32(0x100, 0x0C2002B7)
    bus.write_inst32(0x104, 0x0042A283)
    bus.write_inst32(0x108, 0x0C200337)
    bus.write_inst32(0x10C, 0x00532223)
    bus.write_inst32(0x110, 0x30200073)

    bus.plic.enabled |= 1 << 1
    bus.plic.priorities[1] = 1
    bus.plic.set_interrupt(1)

    first = cpu.step(bus)
    assert first.is_trap and first.code == 0x8000_000B
    assert cpu.pc == 0x100

    cpu.step(bus)
    cpu.step(bus)
    assert cpu.regs[5] == 1
    assert bus.plic.claimed == 1 << 1

    cpu.step(bus)
    cpu.step(bus)
    assert bus.plic.claimed == 0

    bus.plic.clear_interrupt(1)

    result_mret = cpu.step(bus)
    assert result_mret.is_jumped
    assert cpu.pc == 0x0

    cpu.step(bus)
    assert cpu.pc == 0x4


def test_interrupt_disabled_by_mstatus():
    cpu = Cpu(0x0)
    bus = InterruptTestBus()
    cpu.csr.write(0x300, 0)
    cpu.csr.write(0x304, 1 << 11)
    bus.write_inst32(0, 0x00000013)
    bus.plic.enabled |= 1 << 1
    bus.plic.set_interrupt(1)

    result = cpu.step(bus)

    assert result.is_ok
    assert cpu.pc == 4


def test_interrupt_disabled_by_mie():
    cpu = Cpu(0x0)
    bus = InterruptTestBus()
    cpu.csr.write(0x300, 1 << 3)
    cpu.csr.write(0x304, 0)
    bus.write_inst32(0, 0x00000013)
    bus.plic.enabled |= 1 << 1
    bus.plic.set_interrupt(1)

    result = cpu.step(bus)

    assert result.is_ok
    assert cpu.pc == 4


def test_vectored_interrupt_uses_cause_offset():
    cpu = Cpu(0x0)
    bus = InterruptTestBus()
    cpu.csr.write(0x300, 1 << 3)
    cpu.csr.write(0x304, 1 << 7)
    cpu.csr.write(0x305, 0x101)
    bus.timer_interrupt = True

    cpu.step(bus)

    assert cpu.pc == 0x100 + 4 * 7


# --- trap entry and 32-bit execution ----------------------------------------


def test_handle_trap_saves_state_and_records_mode():
    cpu = Cpu(0x40)
    cpu.csr.mtvec = 0x200
    cpu.csr.mstatus = 1 << 3
    cpu.mode = PrivilegeMode.USER

    result = cpu.handle_trap(2, 0xABCD)

    assert result.is_trap and result.code == 2
    assert cpu.pc == 0x200
    assert cpu.csr.mepc == 0x40
    assert cpu.csr.mtval == 0xABCD
    assert (cpu.csr.mstatus >> 11) & 0b11 == 0
    assert (cpu.csr.mstatus >> 7) & 1 == 1
    assert cpu.mode is PrivilegeMode.MACHINE


def test_illegal_32bit_instruction_sets_mtval():
    cpu = Cpu(0x0)
    bus = MockBus()
    cpu.csr.mtvec = 0x100
    bus.write_inst32(0, 0xFFFF_FFFF)

    result = cpu.step(bus)

    assert result.is_trap and result.code == 2
    assert cpu.csr.mtval == 0xFFFF_FFFF
    assert cpu.pc == 0x100


def test_ebreak_32bit_traps_with_breakpoint():
    cpu = Cpu(0x0)
    bus = MockBus()
    bus.write_inst32(0, 0x00100073)
    result = cpu.step(bus)
    assert result.is_trap and result.code == 3
    assert cpu.csr.mtval == 0


def test_wfi_is_a_nop():
    cpu = Cpu(0x0)
    bus = MockBus()
    bus.write_inst32(0, 0x10500073)
    result = cpu.step(bus)
    assert result.is_ok
    assert cpu.pc == 4


def test_addi_and_x0_stays_zero():
    cpu = Cpu(0x0)
    bus = MockBus()
    bus.write_inst32(0x0, 0x00500093)  # addi x1, x0, 5
    bus.write_inst32(0x4, 0x00100013)  # addi x0, x0, 1
    cpu.step(bus)
    cpu.step(bus)
    assert cpu.regs[1] == 5
    assert cpu.regs[0] == 0
    assert cpu.pc == 8


def test_csrrw_swaps_register_and_csr():
    cpu = Cpu(0x0)
    bus = MockBus()
    cpu.regs[2] = 0x1234
    cpu.csr.mscratch = 0x55
    bus.write_inst32(0, 0x340110F3)  # csrrw x1, mscratch, x2
    result = cpu.step(bus)
    assert result.is_ok
    assert cpu.regs[1] == 0x55
    assert cpu.csr.mscratch == 0x1234


def test_csr_write_to_read_only_counter_traps():
    cpu = Cpu(0x0)
    bus = MockBus()
    cpu.csr.mtvec = 0x80
    bus.write_inst32(0, 0xC0009073)  # csrrw x0, cycle, x1
    result = cpu.step(bus)
    assert result.is_trap and result.code == 2
    assert cpu.csr.mcause == 2
    assert cpu.pc == 0x80


def test_claim_and_complete_go_through_bus():
    class PlicBus(MockBus):
        def __init__(self):
            super().__init__()
            self.plic = Plic()

        def plic_claim(self):
            return self.plic.claim()

        def plic_complete(self, source_id):
            self.plic.complete(source_id)

    cpu = Cpu(0)
    bus = PlicBus()
    bus.plic.write(0x000004, 5)
    bus.plic.write(0x002000, 1 << 1)
    bus.plic.write(0x200000, 3)
    bus.plic.set_interrupt(1)

    assert cpu.claim_interrupt(bus) == 1
    assert bus.plic.claimed == 1 << 1
    cpu.complete_interrupt(bus, 1)
    assert bus.plic.claimed == 0


def test_dump_registers_output(capsys):
    cpu = Cpu(0x10)
    cpu.regs[3] = 0xDEAD
    cpu.csr.mcause = 2
    cpu.dump_registers()
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "x00: 0x00000000"
    assert lines[3] == "x03: 0x0000dead"
    assert "pc : 0x00000010" in lines
    assert "mcause : 0x00000002" in lines
    assert len(lines) == 38