"""
Alias Index - equivalence sets for equipment tags and calibration names.

Both sides of every comparison go through the same normalizer, then are
tested for set membership. Calibration names that do not hit an alias
exactly fall back to the longest alias whose words appear, in order and
contiguous, inside the name.
"""

import re
from typing import Optional

from adas_scrub.src.models import CalibrationSystem

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# Procedure words that describe how a calibration is done, not what is calibrated
_NOISE_WORDS = {
    "calibration", "calibrations", "calibrate", "recalibration", "recalibrate",
    "reset", "static", "dynamic", "procedure", "required", "recommended",
    "needed", "initialization", "initialize", "and", "the", "of", "w", "with",
}


def normalize_tag(tag: str) -> str:
    """'Front_Camera', 'front-camera' and 'front camera' all become 'frontcamera'."""
    return _NON_ALNUM.sub("", str(tag).lower())


def _singular(token: str) -> str:
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def name_tokens(name: str) -> tuple[str, ...]:
    tokens = _NON_ALNUM.sub(" ", str(name).lower()).split()
    return tuple(_singular(t) for t in tokens if t not in _NOISE_WORDS)


def normalize_name(name: str) -> str:
    """'Front Camera Calibration (Static)' -> 'front camera'."""
    return " ".join(name_tokens(name))


class AliasIndex:
    """Lookup structure over equipment sets and calibration aliases."""

    def __init__(
        self,
        equipment_sets: dict[str, list[str]],
        system_aliases: dict[CalibrationSystem, list[str]],
        system_equipment: dict[CalibrationSystem, list[str]],
    ):
        self._sets: dict[str, frozenset[str]] = {}
        self._tag_keys: dict[str, set[str]] = {}
        for key, tags in equipment_sets.items():
            members = frozenset(normalize_tag(t) for t in [key, *tags])
            self._sets[key] = members
            for member in members:
                self._tag_keys.setdefault(member, set()).add(key)

        self._system_members: dict[CalibrationSystem, frozenset[str]] = {}
        for system, keys in system_equipment.items():
            members: set[str] = set()
            for key in keys:
                members |= self._sets.get(key, frozenset({normalize_tag(key)}))
            self._system_members[system] = frozenset(members)

        # normalized alias -> systems in table order
        self._aliases: dict[tuple[str, ...], list[CalibrationSystem]] = {}
        for system, aliases in system_aliases.items():
            for alias in [system.value, *aliases]:
                tokens = name_tokens(alias)
                if not tokens:
                    continue
                systems = self._aliases.setdefault(tokens, [])
                if system not in systems:
                    systems.append(system)
        self._by_length = sorted(self._aliases, key=len, reverse=True)

    # ─── equipment tags ───

    def equipment_keys(self, tag: str) -> set[str]:
        return set(self._tag_keys.get(normalize_tag(tag), set()))

    def tags_equivalent(self, a: str, b: str) -> bool:
        na, nb = normalize_tag(a), normalize_tag(b)
        if na == nb:
            return True
        return bool(self._tag_keys.get(na, set()) & self._tag_keys.get(nb, set()))

    def any_equivalent(self, required: list[str], evidence: list[str]) -> bool:
        return any(self.tags_equivalent(r, e) for r in required for e in evidence)

    def tag_indicates_system(self, tag: str, system: CalibrationSystem) -> bool:
        return normalize_tag(tag) in self._system_members.get(system, frozenset())

    # ─── calibration names ───

    def resolve_systems(self, name: str) -> list[CalibrationSystem]:
        """Canonical systems a free-text calibration name refers to."""
        tokens = name_tokens(name)
        if not tokens:
            return []
        exact = self._aliases.get(tokens)
        if exact:
            return list(exact)

        best: Optional[int] = None
        found: list[CalibrationSystem] = []
        for alias in self._by_length:
            if best is not None and len(alias) < best:
                break
            if _contains_phrase(tokens, alias):
                best = len(alias)
                for system in self._aliases[alias]:
                    if system not in found:
                        found.append(system)
        return found

    def resolve_system(self, name: str) -> Optional[CalibrationSystem]:
        systems = self.resolve_systems(name)
        return systems[0] if systems else None

    def names_match(self, name: str, system: CalibrationSystem) -> bool:
        return system in self.resolve_systems(name)


def _contains_phrase(tokens: tuple[str, ...], phrase: tuple[str, ...]) -> bool:
    n = len(phrase)
    return any(tokens[i:i + n] == phrase for i in range(len(tokens) - n + 1))
