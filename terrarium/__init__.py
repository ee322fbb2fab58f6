"""Temperature and humidity control for reptile enclosures: PID, relays, DHT22, OLED, heap and a simulated run loop."""

__version__ = "0.1.0"
__all__ = ["__version__"]