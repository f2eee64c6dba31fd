# rvemu32

A compact emulator for a 32-bit RISC-V hart (RV32I with the M and C
extensions, machine and user mode), with a platform-level interrupt
controller (PLIC) and a core-local interruptor (CLINT). It is a library:
you build a bus, load a raw binary into it and step the CPU from Python.

## Installing

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Modules

- `rvemu32.cpu.Cpu(pc=0)`: the hart. Holds 32 registers (`regs`), the
  program counter (`pc`), the control and status registers (`csr`) and the
  privilege mode (`mode`).
  - `step(bus)` advances the bus clock, takes a pending interrupt if there
    is one, otherwise fetches and executes one 32-bit or 16-bit instruction,
    and returns a `StepResult`.
  - `handle_trap(exception_code, mtval)` saves `pc` in `mepc`, sets
    `mcause`, `mtval` and the `mstatus` MIE/MPIE/MPP fields, switches to
    machine mode and jumps to `mtvec` (vectored for interrupts when
    `mtvec` mode is 1).
  - `claim_interrupt(bus)` and `complete_interrupt(bus, source_id)` pass
    through to the bus's PLIC.
  - `dump_registers()` prints the registers, `pc` and the main trap CSRs.
- `rvemu32.state.StepResult`: what a step did, built with
  `StepResult.ok()`, `StepResult.trap(code)` or `StepResult.jumped()`, and
  inspected with `is_ok`, `is_trap`, `is_jumped` and `code`.
- `rvemu32.state.PrivilegeMode`: `USER`, `SUPERVISOR` and `MACHINE`, valued
  as encoded in `mstatus.MPP`.
- `rvemu32.csr.Csr`: the machine-mode CSR file, with `read(addr)` and
  `write(addr, val)`. Unknown CSRs, and writes to read-only ones, raise
  `rvemu32.csr.CsrAccessError`; the CPU turns that into an
  illegal-instruction trap.
- `rvemu32.bus.Bus`: the abstract interface the CPU uses for memory and
  interrupt lines. `rvemu32.bus.MockBus(size=8192)` is flat little-endian
  RAM, with `write_inst32` and `write_inst16` for placing instructions.
- `rvemu32.default_bus.DefaultBus(size)`: RAM from address 0, a PLIC mapped
  at `0x0c000000` and a CLINT mapped at `0x02000000`.
  `load_bin(path, offset=0)` copies a raw image into RAM, dropping bytes
  that fall past its end. Each `tick()` advances the CLINT's `mtime` by one.
- `rvemu32.plic.Plic`: priorities, enable mask, threshold and
  claim/complete handling for level-triggered sources 1 to 31;
  `set_interrupt` and `clear_interrupt` drive a source's line.
- `rvemu32.clint.Clint`: `msip`, `mtimecmp` and `mtime` for hart 0.
- `rvemu32.compressed.execute_compressed(cpu, inst, quadrant, bus)`:
  execution of RV32C instructions.
- `rvemu32.decode`: instruction field decoders.

## Example

```python
from rvemu32.cpu import Cpu
from rvemu32.default_bus import DefaultBus

bus = DefaultBus(0x10000)
bus.load_bin("program.bin", 0)

cpu = Cpu(0)
for _ in range(1000):
    result = cpu.step(bus)
    if result.is_trap:
        print(f"trap, mcause=0x{cpu.csr.mcause:08x}")

cpu.dump_registers()
```

Interrupts are taken before the next instruction when `mstatus.MIE` is set
and the matching bit in `mie` is enabled. External interrupts take
priority over software interrupts, and software interrupts take priority
over timer interrupts.

## What it does not do

- There is no command-line program; the emulator is driven from Python.
- Only raw binary images are loaded; there is no ELF loader.
- There are no devices besides RAM, the PLIC and the CLINT (no UART or
  console, no disk).
- `satp` is stored but there is no address translation, and there are no
  memory-protection or misaligned-access checks. Accesses outside RAM and
  the device windows raise `IndexError` rather than trapping.