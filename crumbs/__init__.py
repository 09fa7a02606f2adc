"""CRC-checked message framing, bus scanning and register helpers for I2C controllers and peripherals."""

__version__ = "0.12.2"

__all__ = ["crc", "message", "context", "scan", "device", "led"]