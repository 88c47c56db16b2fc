"""Voice library mapping panel members to Deepgram Aura voices.

Each gender has three fixed voices. A panel member's voice is picked by its
position in the roster, so agents sharing a gender still sound distinct in
panels of up to three per gender.
"""

from typing import Dict, List, Optional, Union

from ..core.enums import Gender
from ..core.participants import normalize_gender


# =============================================================================
# AURA-2 VOICE MODELS
# =============================================================================

AURA_VOICES: Dict[Gender, List[str]] = {
    Gender.FEMALE: [
        "aura-2-thalia-en",     # Clear, energetic
        "aura-2-amalthea-en",   # Warm, friendly
        "aura-2-andromeda-en",  # Calm, measured
    ],
    Gender.MALE: [
        "aura-2-arcas-en",      # Natural, smooth
        "aura-2-orpheus-en",    # Professional, steady
        "aura-2-zeus-en",       # Deep, confident
    ],
}

DEFAULT_VOICE = AURA_VOICES[Gender.FEMALE][0]


def select_voice(gender: Optional[Union[Gender, str]], slot: int) -> str:
    """Pick the Aura model for a gender and roster slot.

    Args:
        gender: Voice gender (unknown values map to female)
        slot: Agent's index in the roster

    Returns:
        Deepgram model name, e.g. "aura-2-orpheus-en"
    """
    if not isinstance(gender, Gender):
        gender = normalize_gender(gender)
    voices = AURA_VOICES[gender]
    return voices[max(slot, 0) % len(voices)]


def list_available_voices() -> Dict[str, List[str]]:
    """All voices, keyed by gender value."""
    return {gender.value: list(voices) for gender, voices in AURA_VOICES.items()}
