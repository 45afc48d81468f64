"""DentalHub access core test suite."""
