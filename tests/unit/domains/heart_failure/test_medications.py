"""Tests for the medication policy table."""

from __future__ import annotations

from cardioguard.domains.heart_failure.domain_logic.medications import (
    KNOWN_MEDICATIONS,
    MedicationEffect,
    lookup_medication,
    resolve_effects,
)


class TestLookup:
    def test_known_ids_are_unique(self):
        ids = [m.id for m in KNOWN_MEDICATIONS]
        assert len(ids) == len(set(ids))

    def test_lookup_digoxin(self):
        med = lookup_medication("digoxin")
        assert med is not None
        assert med.effect == MedicationEffect.DIGOXIN

    def test_lookup_unknown(self):
        assert lookup_medication("aspirin") is None


class TestResolveEffects:
    def test_beta_blockers(self):
        for med_id in ("metoprolol", "carvedilol", "bisoprolol", "beta_blockers"):
            assert resolve_effects([med_id]) == frozenset({MedicationEffect.BETA_BLOCKER})

    def test_furosemide_is_diuretic(self):
        assert MedicationEffect.DIURETIC in resolve_effects(["furosemide"])

    def test_unknown_and_effectless_ids_add_nothing(self):
        assert resolve_effects(["aspirin", "other"]) == frozenset()

    def test_combined(self):
        effects = resolve_effects(["digoxin", "furosemide", "lisinopril"])
        assert effects == frozenset({
            MedicationEffect.DIGOXIN,
            MedicationEffect.DIURETIC,
            MedicationEffect.ACE_OR_SPIRONOLACTONE,
        })
