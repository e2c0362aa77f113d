"""Simulated GM and Player agents.

This module provides:

1. Decision policies - one class per GM or player mode, all implementing
   Policy.choose(view, options)
2. Behavioral archetypes - trait profiles that drive question and action
   generation for critique
3. Agents - GMAgent and PlayerAgent wrap a policy for the simulation runner
"""

from adventure_sim.agents.archetypes import (
    ARCHETYPES,
    ActionTemplate,
    Archetype,
    ArchetypeModel,
    ArchetypeReport,
    AttemptedAction,
    Question,
    QuestionType,
    build_archetype_report,
    get_archetype,
)
from adventure_sim.agents.base import Option, OptionKind, Policy, SceneView
from adventure_sim.agents.gm import (
    GM_POLICIES,
    AdversarialGM,
    DramaticGM,
    EfficientGM,
    GMAgent,
    GMPhase,
    GMPolicy,
    RandomGM,
    SupportiveGM,
    ThoroughGM,
    create_gm_policy,
)
from adventure_sim.agents.player import (
    PLAYER_POLICIES,
    AggressivePlayer,
    ArchetypePlayer,
    CautiousPlayer,
    OptimalPlayer,
    PlayerAgent,
    PlayerPolicy,
    RandomPlayer,
    SpeedrunPlayer,
    ThoroughPlayer,
    create_player_policy,
)

__all__ = [
    # Base
    "Option",
    "OptionKind",
    "Policy",
    "SceneView",
    # Archetypes
    "ARCHETYPES",
    "ActionTemplate",
    "Archetype",
    "ArchetypeModel",
    "ArchetypeReport",
    "AttemptedAction",
    "Question",
    "QuestionType",
    "build_archetype_report",
    "get_archetype",
    # GM
    "GM_POLICIES",
    "AdversarialGM",
    "DramaticGM",
    "EfficientGM",
    "GMAgent",
    "GMPhase",
    "GMPolicy",
    "RandomGM",
    "SupportiveGM",
    "ThoroughGM",
    "create_gm_policy",
    # Player
    "PLAYER_POLICIES",
    "AggressivePlayer",
    "ArchetypePlayer",
    "CautiousPlayer",
    "OptimalPlayer",
    "PlayerAgent",
    "PlayerPolicy",
    "RandomPlayer",
    "SpeedrunPlayer",
    "ThoroughPlayer",
    "create_player_policy",
]
