"""RV32IMC emulator with a CPU, CSR file, memory buses, a PLIC and a CLINT."""

__version__ = "1.1.0"