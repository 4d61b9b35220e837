"""
Statement Kernel - canonical bank statement model

Format-independent statement representation shared by every codec and
engine:
- Immutable account, balance, transaction and statement values
- Exact decimal amounts with explicit credit/debit indicators
- Balance invariant enforced at construction
- Typed error hierarchy and structured JSON logging
"""

__version__ = "0.1.0"
