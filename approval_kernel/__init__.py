"""
Approval Kernel

Core types for the procurement approval workflow engine:
- Immutable organisational directory snapshots
- Approval chain value objects and step lifecycle
- Typed exceptions with machine-readable codes
- Structured JSON logging
- User-account store for identity binding
"""

__version__ = "0.1.0"
