# MIT License
# Copyright (c) 2025 Hashborn

"""
payvault: pooled payout ledger with weighted participants and relayed claims.
"""

__version__ = "1.0.0"
