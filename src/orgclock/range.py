"""Line range of a block of document text."""

from pydantic import BaseModel, ConfigDict, model_validator


class Range(BaseModel):
    """An immutable, inclusive span of 1-based document lines.

    Attributes:
        start_line: First line of the block (the opening delimiter).
        end_line: Last line of the block (the closing delimiter).
    """

    model_config = ConfigDict(frozen=True)

    start_line: int
    end_line: int

    @model_validator(mode="after")
    def _check_order(self) -> "Range":
        if self.start_line < 1 or self.end_line < self.start_line:
            raise ValueError(f"Invalid range: {self.start_line}-{self.end_line}")
        return self

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    def shifted(self, line: int, delta: int) -> "Range":
        """Return the range after ``delta`` lines were inserted or removed at ``line``.

        Boundaries at or below ``line`` move by ``delta``; boundaries above it
        stay put, so an edit inside the block only stretches ``end_line``.
        """
        start = self.start_line + delta if self.start_line >= line else self.start_line
        end = self.end_line + delta if self.end_line >= line else self.end_line
        return Range(start_line=start, end_line=end)
