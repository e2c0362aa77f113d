"""Pydantic schemas for adventure content documents.

An adventure is a directory holding one adventure-level document and one
document per scene:

    my-adventure/
        adventure.json          AdventureDocument
        scenes/
            01-arrival.json     Scene
            02-market.json      Scene

All models are frozen; content is never mutated after load. Field-level
validation happens here. Cross-document checks (unknown NPCs, missing exit
targets, undeclared flags) happen in adventure_sim.content.loader.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from adventure_sim.models.state import FlagValue, NPCStatus
from adventure_sim.parameters import DEFAULT_MAX_WOUNDS, DEFAULT_SKILL_BONUSES


class SceneType(str, Enum):
    """Structural role of a scene."""

    STANDARD = "standard"
    ENDING = "ending"


class ChallengeType(str, Enum):
    """How a challenge is presented to players."""

    ACTIVE = "active"  # Players choose to attempt it
    PASSIVE = "passive"  # Rolled on the players' behalf
    HIDDEN = "hidden"  # GM rolls secretly


# =============================================================================
# Effects
# =============================================================================


class Effect(BaseModel):
    """State delta produced by a trigger, a challenge outcome, or NPC aggression."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    set_flags: dict[str, FlagValue] = Field(default_factory=dict)
    wounds: int = Field(default=0, ge=0)
    heal: int = Field(default=0, ge=0)
    grant_items: tuple[str, ...] = ()
    remove_items: tuple[str, ...] = ()
    npc_states: dict[str, NPCStatus] = Field(default_factory=dict)
    recover: tuple[str, ...] = Field(
        default=(),
        description="NPC ids explicitly brought back from defeat by this effect",
    )

    @property
    def is_empty(self) -> bool:
        return not (
            self.set_flags
            or self.wounds
            or self.heal
            or self.grant_items
            or self.remove_items
            or self.npc_states
            or self.recover
        )

    @property
    def items(self) -> tuple[str, ...]:
        return self.grant_items + self.remove_items

    @property
    def npcs(self) -> tuple[str, ...]:
        return tuple(self.npc_states) + self.recover


# =============================================================================
# Scene content
# =============================================================================


class Hook(BaseModel):
    """An intriguing, player-visible phrase that invites questions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    text: str = Field(min_length=1)
    kind: Literal["person", "place", "thing", "event"] = "thing"


class SceneNPC(BaseModel):
    """An NPC's appearance in a scene."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    state: NPCStatus = NPCStatus.ACTIVE
    role: str = ""
    hostile: bool = False
    required: bool = Field(default=False, description="Whether the main path needs the party to engage this NPC")
    aggression: Effect | None = Field(
        default=None, description="Optional effect the GM may play when this NPC turns on the party"
    )


class Challenge(BaseModel):
    """A skill check."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    name: str
    skill: str
    difficulty: int = Field(ge=1, le=30)
    difficulty_range: tuple[int, int] | None = None
    type: ChallengeType = ChallengeType.ACTIVE
    requires_item: str | None = None
    success: Effect = Field(default_factory=Effect)
    failure: Effect = Field(default_factory=Effect)
    severity: int = Field(default=1, ge=0, le=10)
    description: str = ""

    @model_validator(mode="after")
    def validate_range(self) -> "Challenge":
        if self.difficulty_range is not None:
            low, high = self.difficulty_range
            if low > high:
                raise ValueError(f"difficulty_range {self.difficulty_range} is inverted")
        return self

    @property
    def difficulty_choices(self) -> tuple[int, int]:
        return self.difficulty_range or (self.difficulty, self.difficulty)


class Trigger(BaseModel):
    """A scripted event the GM can fire."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    label: str
    irreversible: bool = False
    text: str = ""
    requires: str | None = Field(default=None, description="Guard expression")
    effects: Effect = Field(default_factory=Effect)
    severity: int = Field(default=1, ge=0, le=10)
    harmful: bool = False
    helpful: bool = False


class Exit(BaseModel):
    """A transition to another scene."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: str
    guard: str | None = Field(default=None, description="Guard expression")
    label: str = ""


class LootEntry(BaseModel):
    """An item granted on a d20 roll at or above `roll`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    item: str
    roll: int = Field(default=10, ge=1, le=20)


class Scene(BaseModel):
    """A single scene document."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    act: int = Field(default=1, ge=1)
    chapter: int = Field(default=1, ge=1)
    index: int = Field(default=0, ge=0)
    title: str = ""
    location: str = ""
    narrative: str = ""
    environment: str = ""
    type: SceneType = SceneType.STANDARD
    rest: bool = False
    hooks: tuple[Hook, ...] = ()
    npcs: tuple[SceneNPC, ...] = ()
    challenges: tuple[Challenge, ...] = ()
    triggers: tuple[Trigger, ...] = ()
    exits: tuple[Exit, ...] = ()
    items: tuple[str, ...] = ()
    loot: tuple[LootEntry, ...] = ()
    flags: tuple[str, ...] = Field(
        default=(), description="Scene markers such as adventure_start / adventure_end"
    )

    @field_validator("hooks", mode="before")
    @classmethod
    def coerce_hooks(cls, value):
        """Accept plain strings as thing hooks."""
        if isinstance(value, (list, tuple)):
            return [{"text": h} if isinstance(h, str) else h for h in value]
        return value

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "Scene":
        for label, ids in (
            ("challenge", [c.id for c in self.challenges]),
            ("trigger", [t.id for t in self.triggers]),
            ("npc", [n.id for n in self.npcs]),
        ):
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            if duplicates:
                raise ValueError(f"Duplicate {label} ids in scene {self.id}: {duplicates}")
        return self

    @property
    def order_key(self) -> tuple[int, int, int, str]:
        return (self.act, self.chapter, self.index, self.id)

    @property
    def display_name(self) -> str:
        return self.title or self.id

    @property
    def is_ending(self) -> bool:
        return self.type == SceneType.ENDING or "adventure_end" in self.flags

    def challenge(self, challenge_id: str) -> Challenge:
        for challenge in self.challenges:
            if challenge.id == challenge_id:
                return challenge
        raise KeyError(challenge_id)

    def trigger(self, trigger_id: str) -> Trigger:
        for trigger in self.triggers:
            if trigger.id == trigger_id:
                return trigger
        raise KeyError(trigger_id)


# =============================================================================
# Adventure document
# =============================================================================


class FlagDecl(BaseModel):
    """Declaration of a flag: boolean, or enumerated with a closed value set."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default: FlagValue = False
    values: tuple[str, ...] | None = None
    description: str = ""

    @model_validator(mode="after")
    def validate_default(self) -> "FlagDecl":
        if self.values is None:
            if not isinstance(self.default, bool):
                raise ValueError(
                    f"Flag default {self.default!r} is not boolean; declare 'values' for enumerated flags"
                )
        else:
            if not self.values:
                raise ValueError("Enumerated flag needs at least one value")
            if self.default not in self.values:
                raise ValueError(f"Flag default {self.default!r} not in values {self.values}")
        return self

    @property
    def is_enum(self) -> bool:
        return self.values is not None

    @property
    def domain(self) -> tuple[FlagValue, ...]:
        return self.values if self.values is not None else (False, True)

    def accepts(self, value: FlagValue) -> bool:
        if self.values is None:
            return isinstance(value, bool)
        return value in self.values


class NPCDef(BaseModel):
    """Catalog entry for an NPC."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    name: str
    role: str = ""
    description: str = ""
    motivation: str = ""
    backstory: str = ""
    secret: str = ""
    initial_state: NPCStatus = NPCStatus.ABSENT


class ItemDef(BaseModel):
    """Catalog entry for an item or clue."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    name: str
    description: str = ""
    clue: bool = False


class Mystery(BaseModel):
    """Authored foreknowledge used by the GM validator.

    patterns are case-insensitive phrases; a critique mentioning any of them
    is about this mystery.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    question: str
    answer: str = ""
    reveal_scene: str | None = None
    patterns: tuple[str, ...] = ()
    red_herring: bool = False


class AdventureDocument(BaseModel):
    """The adventure-level document (adventure.json)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    adventure_id: str = Field(min_length=1)
    title: str = ""
    start_scene: str
    flags: dict[str, FlagDecl] = Field(default_factory=dict)
    npcs: tuple[NPCDef, ...] = ()
    items: tuple[ItemDef, ...] = ()
    mysteries: tuple[Mystery, ...] = ()
    themes: tuple[str, ...] = ()
    tone: str = ""
    max_wounds: int = Field(default=DEFAULT_MAX_WOUNDS, ge=1)
    skill_bonuses: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_SKILL_BONUSES))

    @field_validator("flags", mode="before")
    @classmethod
    def coerce_flag_shorthand(cls, value):
        """Accept `name: default` shorthand for flag declarations."""
        if isinstance(value, dict):
            return {
                name: decl if isinstance(decl, dict) else {"default": decl}
                for name, decl in value.items()
            }
        return value

    @model_validator(mode="after")
    def validate_unique_catalogs(self) -> "AdventureDocument":
        for label, ids in (
            ("npc", [n.id for n in self.npcs]),
            ("item", [i.id for i in self.items]),
            ("mystery", [m.id for m in self.mysteries]),
        ):
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            if duplicates:
                raise ValueError(f"Duplicate {label} ids: {duplicates}")
        return self
