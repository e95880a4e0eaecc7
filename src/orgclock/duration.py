"""Duration value type for clock arithmetic.

Durations are whole minutes, signed. Clock lines render them as ``H:MM``
where the hour part is not padded and may exceed 24.
"""

from pydantic import BaseModel, ConfigDict


class Duration(BaseModel):
    """An elapsed time in whole minutes."""

    model_config = ConfigDict(frozen=True)

    minutes: int = 0

    @classmethod
    def from_seconds(cls, seconds: float) -> "Duration":
        """Build a duration from a second count, rounding down to the minute."""
        return cls(minutes=int(seconds // 60))

    @classmethod
    def from_minutes(cls, minutes: int) -> "Duration":
        return cls(minutes=int(minutes))

    def to_string(self, fmt: str = "HH:MM") -> str:
        """Render the duration.

        Args:
            fmt: Output format. Only ``HH:MM`` is supported.

        Returns:
            String like ``2:05`` or ``-1:10``
        """
        if fmt != "HH:MM":
            raise ValueError(f"Unsupported duration format: {fmt!r}")
        sign = "-" if self.minutes < 0 else ""
        hours, minutes = divmod(abs(self.minutes), 60)
        return f"{sign}{hours}:{minutes:02d}"

    def __add__(self, other: object) -> "Duration":
        if isinstance(other, Duration):
            return Duration(minutes=self.minutes + other.minutes)
        if isinstance(other, int):
            return Duration(minutes=self.minutes + other)
        return NotImplemented

    def __str__(self) -> str:
        return self.to_string()
