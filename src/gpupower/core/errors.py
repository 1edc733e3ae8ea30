"""
Error Types for Power Telemetry Resolution

Only two kinds of input are rejected outright:
- Malformed catalog registrations (empty name pattern)
- Non-positive numeric references (TDP on registration, reference limit
  passed to a manual watt estimate)

Missing telemetry is never an error. Getters return None instead.
"""


class InvalidArgumentError(ValueError):
    """Raised when a required argument is empty or malformed."""


class OutOfRangeError(ValueError):
    """Raised when a numeric reference value is outside its valid range."""

    def __init__(self, name: str, value: float, message: str = "must be greater than zero"):
        self.name = name
        self.value = value
        super().__init__(f"{name} {message}, got {value}")
