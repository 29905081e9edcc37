from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Session(BaseModel):
    """Credentials needed to resume a player's connection to a game.

    A persisted session is enough on its own to reconnect; no username has to
    be entered again.
    """

    model_config = ConfigDict(frozen=True)

    game_id: str = Field(min_length=1)
    player_id: str = Field(min_length=1)
    # older records store the secret under "secret"
    player_secret: str = Field(min_length=1, validation_alias=AliasChoices("player_secret", "secret"))
