from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChildAmounts(BaseModel):
    """A money figure per child (savings goal or amount saved)."""

    adrian: float = 0
    emma: float = 0


class PointsRecord(BaseModel):
    """The full board: awarded point indexes per child plus money fields.

    Used for stored blobs and responses, which are trusted as written.
    """

    adrian: list[int] = Field(default_factory=list)
    emma: list[int] = Field(default_factory=list)
    goals: ChildAmounts = Field(default_factory=ChildAmounts)
    savings: ChildAmounts = Field(default_factory=ChildAmounts)

    @classmethod
    def empty(cls) -> "PointsRecord":
        return cls()


class StrictChildAmounts(ChildAmounts):
    model_config = ConfigDict(strict=True, allow_inf_nan=False)

    adrian: float
    emma: float


class PointsUpdate(PointsRecord):
    """Request body for a full board replace; every field is required.

    The upper bound of a point index is per-app configuration and is
    checked by the router.
    """

    model_config = ConfigDict(strict=True)

    adrian: list[int]
    emma: list[int]
    goals: StrictChildAmounts
    savings: StrictChildAmounts

    @field_validator("adrian", "emma")
    @classmethod
    def _unique_positive_indexes(cls, value: list[int]) -> list[int]:
        for index in value:
            if index < 1:
                raise ValueError(f"point {index} must be 1 or greater")
        if len(set(value)) != len(value):
            raise ValueError("point indexes must be unique")
        return value
