"""
Unit tests for the risk engine and CPIC recommendation lookup.
"""
import pytest

from pharmaguard.models import DrugRiskProfile, PhenotypeCall, Recommendation
from pharmaguard.modules.recommendation import GENERIC_RECOMMENDATION, resolve_recommendation
from pharmaguard.modules.risk_engine import compute_risk, risk_label_for, risk_level_for


def make_call(phenotype, diplotype="*1/*1", gene="CYP2D6"):
    return PhenotypeCall(gene=gene, phenotype=phenotype, diplotype=diplotype)


class TestComputeRisk:

    def test_codeine_pm_is_toxic(self, kb):
        risk = compute_risk(kb.drug_risks, kb.risk_levels, "CODEINE", make_call("PM", "*1/*4"))
        assert risk.risk_label == "Toxic"
        assert risk.severity == "critical"
        assert risk.confidence == 0.93
        assert risk.gene == "CYP2D6"
        assert risk.diplotype == "*1/*4"
        assert risk.phenotype == "PM"

    def test_drug_name_is_normalized(self, kb):
        risk = compute_risk(kb.drug_risks, kb.risk_levels, "  codeine ", make_call("URM"))
        assert risk.risk_label == "Toxic"

    @pytest.mark.parametrize(
        "phenotype, label, severity, confidence",
        [
            ("PM", "Ineffective", "high", 0.90),
            ("IM", "Adjust Dosage", "moderate", 0.88),
            ("NM", "Safe", "none", 0.95),
            ("RM", "Safe", "none", 0.95),
            ("URM", "Adjust Dosage", "moderate", 0.88),
        ],
    )
    def test_clopidogrel_table(self, kb, phenotype, label, severity, confidence):
        risk = compute_risk(kb.drug_risks, kb.risk_levels, "clopidogrel", make_call(phenotype, gene="CYP2C19"))
        assert (risk.risk_label, risk.severity, risk.confidence) == (label, severity, confidence)

    @pytest.mark.parametrize("drug", ["ASPIRIN", "unknowndrug123", "", "   "])
    def test_unsupported_drug_total_fallback(self, kb, drug):
        risk = compute_risk(kb.drug_risks, kb.risk_levels, drug, make_call("PM", "*4/*4"))
        assert risk.risk_label == "Unknown"
        assert risk.severity == "none"
        assert risk.confidence == 0.5
        assert risk.gene == "Unknown"
        assert risk.phenotype == "Unknown"
        assert risk.diplotype == "*1/*1"
        assert risk.variants == []

    def test_missing_phenotype_key_resolves_unknown(self, kb):
        drug_risks = {"TESTDRUG": DrugRiskProfile(gene="CYP2D6", nm_risk="Safe")}
        risk = compute_risk(drug_risks, kb.risk_levels, "testdrug", make_call("PM"))
        assert risk.risk_label == "Unknown"
        assert risk.severity == "none"
        assert risk.confidence == 0.5
        assert risk.gene == "CYP2D6"

    def test_unknown_phenotype_resolves_unknown(self, kb):
        assert risk_label_for(kb.drug_risks["CODEINE"], "Unknown") == "Unknown"


def test_severity_confidence_table(kb):
    expected = {
        "Safe": ("none", 0.95),
        "Adjust Dosage": ("moderate", 0.88),
        "Toxic": ("critical", 0.93),
        "Ineffective": ("high", 0.90),
        "Unknown": ("none", 0.50),
    }
    for label, (severity, confidence) in expected.items():
        level = risk_level_for(kb.risk_levels, label)
        assert (level.severity, level.confidence) == (severity, confidence)


class TestRecommendations:

    def test_exact_phenotype_entry(self, kb):
        rec = resolve_recommendation(kb.cpic, "codeine", "PM")
        assert rec.action == "Avoid codeine"
        assert rec.urgency == "immediate"
        assert rec.monitoring_required is True
        assert "Morphine" in rec.alternative_drugs

    def test_unknown_drug_gets_generic_default(self, kb):
        rec = resolve_recommendation(kb.cpic, "ibuprofen", "PM")
        assert rec == GENERIC_RECOMMENDATION
        assert rec.action == "Standard dosing"
        assert rec.alternative_drugs == ()
        assert rec.monitoring_required is False
        assert rec.urgency == "routine"

    def test_missing_phenotype_falls_back_to_nm_verbatim(self):
        nm = Recommendation(
            action="Standard dosing",
            dosing="Use label dose.",
            alternatives=[],
            monitoring=False,
            urgency="routine",
            cpic="Test guideline",
        )
        cpic = {"TESTDRUG": {"NM": nm}}
        assert resolve_recommendation(cpic, "testdrug", "PM") is nm

    def test_missing_nm_falls_back_to_generic(self):
        im = Recommendation(
            action="Reduce dose",
            dosing_guidance="Half dose.",
            urgency="high",
            cpic_guideline_reference="Test guideline",
        )
        cpic = {"TESTDRUG": {"IM": im}}
        assert resolve_recommendation(cpic, "TESTDRUG", "PM") == GENERIC_RECOMMENDATION

    def test_unknown_phenotype_uses_nm(self, kb):
        rec = resolve_recommendation(kb.cpic, "WARFARIN", "Unknown")
        assert rec == kb.cpic["WARFARIN"]["NM"]

    def test_urgency_is_constrained(self, kb):
        allowed = {"immediate", "high", "normal", "routine"}
        for by_phenotype in kb.cpic.values():
            for rec in by_phenotype.values():
                assert rec.urgency in allowed
        with pytest.raises(ValueError):
            Recommendation(action="x", dosing="y", cpic="z", urgency="asap")
