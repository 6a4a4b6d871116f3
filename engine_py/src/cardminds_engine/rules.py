"""
Game rule configuration and validation.
"""

from pydantic import BaseModel, Field, field_validator


class RuleConfig(BaseModel):
    """Configuration for game rules and settings."""

    min_players: int = Field(
        default=1,
        ge=1,
        le=8,
        description="Minimum number of players required to start"
    )
    max_players: int = Field(
        default=8,
        ge=1,
        le=8,
        description="Maximum number of players allowed"
    )
    hand_size: int = Field(
        default=5,
        ge=1,
        description="Cards dealt to each player at the start of a round"
    )
    special_round_draw: int = Field(
        default=3,
        ge=0,
        description="Cards drawn by every player at the start of a special-mode round"
    )
    hand_limit: int = Field(
        default=10,
        ge=1,
        description="Hand size above which a special-mode player must discard"
    )
    discard_count: int = Field(
        default=3,
        ge=1,
        description="Exact number of cards a player over the hand limit discards"
    )
    double_deck_threshold: int = Field(
        default=4,
        ge=1,
        description="Player count at which a second 52-card set is added"
    )
    total_rounds: int = Field(
        default=3,
        ge=1,
        description="Rounds played in easy and pro mode"
    )
    special_target_score: int = Field(
        default=3000,
        ge=1,
        description="Total score that ends a special-mode game"
    )
    target_attempts: int = Field(
        default=50,
        ge=1,
        description="Attempts the easy target generator makes before falling back"
    )
    fallback_target: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Target used when no valid target could be generated"
    )
    max_target: int = Field(
        default=100,
        ge=1,
        description="Largest target the easy generator accepts"
    )
    allow_single_number: bool = Field(
        default=True,
        description="Whether a lone number card is a valid equation"
    )

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't fall below minimum."""
        min_players = info.data.get('min_players', 1)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    def validate_player_count(self, player_count: int) -> bool:
        """Check if a player count is valid for this configuration."""
        return self.min_players <= player_count <= self.max_players

    def deck_count(self, player_count: int) -> int:
        """Number of 52-card sets used for a given player count."""
        return 2 if player_count >= self.double_deck_threshold else 1


# Default configuration instance
default_rules = RuleConfig()


def create_rules(**overrides) -> RuleConfig:
    """Create a RuleConfig with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return RuleConfig(**config_dict)
