from pydantic import BaseModel, ConfigDict, Field

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class UserRead(BaseModel):
    """
    Pydantic model for reading user data.
    Corresponds to the db_models.Users ORM model.
    """
    id: int
    name: str
    color: str

    model_config = ConfigDict(from_attributes=True)

    @property
    def initial(self) -> str:
        return self.name[:1].upper()


class UserColorUpdate(BaseModel):
    color: str = Field(..., pattern=HEX_COLOR_PATTERN)


class RoommateAvailability(BaseModel):
    """
    Per-week availability summary shown on the roommates view.
    Day indexes are 0 = Sunday ... 6 = Saturday.
    """
    user: UserRead
    available_days: list[int] = Field(default_factory=list)
    all_day_off_days: list[int] = Field(default_factory=list)
    description: str
