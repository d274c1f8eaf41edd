"""Debugger building blocks for 8051 targets: target interfaces, the s51 simulator target, EC2/EC3 bootloader access, symbol and type tables, and serial playback and sniffing tools."""

__version__ = "0.1.0"