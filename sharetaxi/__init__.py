"""ShareTaxi - carpool matching for residential buildings."""

__version__ = "1.0.0"
