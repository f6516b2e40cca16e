"""Medication policy table: which known drugs shift monitoring thresholds."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class MedicationEffect(str, Enum):
    BETA_BLOCKER = "betaBlocker"          # lowers expected resting HR
    DIURETIC = "diuretic"                 # earlier weight-gain threshold
    DIGOXIN = "digoxin"                   # bradycardia <50 BPM is significant
    ACE_OR_SPIRONOLACTONE = "aceOrSpironolactone"


@dataclass(frozen=True)
class Medication:
    id: str
    name: str
    effect: MedicationEffect | None = None


KNOWN_MEDICATIONS: tuple[Medication, ...] = (
    Medication("digoxin", "Digoxin", MedicationEffect.DIGOXIN),
    Medication("furosemide", "Furosemide", MedicationEffect.DIURETIC),
    Medication("spironolactone", "Spironolactone", MedicationEffect.ACE_OR_SPIRONOLACTONE),
    Medication("metoprolol", "Metoprolol", MedicationEffect.BETA_BLOCKER),
    Medication("lisinopril", "Lisinopril", MedicationEffect.ACE_OR_SPIRONOLACTONE),
    Medication("carvedilol", "Carvedilol", MedicationEffect.BETA_BLOCKER),
    Medication("bisoprolol", "Bisoprolol", MedicationEffect.BETA_BLOCKER),
    Medication("beta_blockers", "Other Beta-blockers", MedicationEffect.BETA_BLOCKER),
    Medication("ace_inhibitors", "Other ACE inhibitors", MedicationEffect.ACE_OR_SPIRONOLACTONE),
    Medication("other", "Other", None),
)

_BY_ID: dict[str, Medication] = {m.id: m for m in KNOWN_MEDICATIONS}


def lookup_medication(medication_id: str) -> Medication | None:
    return _BY_ID.get(medication_id)


def resolve_effects(medication_ids: Iterable[str]) -> frozenset[MedicationEffect]:
    """Map medication ids to the set of threshold effects they carry.

    Unknown ids and known ids without an effect contribute nothing.
    """
    effects: set[MedicationEffect] = set()
    for med_id in medication_ids:
        med = _BY_ID.get(med_id)
        if med is not None and med.effect is not None:
            effects.add(med.effect)
    return frozenset(effects)
