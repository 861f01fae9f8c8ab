"""packbench: statistical micro-benchmark orchestrator."""

__version__ = "0.1.0"
