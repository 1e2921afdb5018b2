"""Point-of-sale agent core: cloud pairing and heartbeats, configuration, secrets, tokens, ESC/POS receipts, label validation and file printing."""

__version__ = "0.1.0"

__all__ = [
    "cloud",
    "config",
    "cp858",
    "escpos",
    "heartbeat",
    "hs256",
    "label",
    "pairing",
    "printer",
    "secrets",
]