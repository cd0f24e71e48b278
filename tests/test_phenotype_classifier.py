"""
Unit tests for the phenotype classifier.
"""
import pytest

from pharmaguard.models import VariantRecord
from pharmaguard.modules.phenotype_classifier import (
    activity_to_phenotype,
    build_activity_profile,
    build_diplotype,
    classify_phenotype,
)


def make_record(gene="CYP2D6", star_allele="Unknown", activity=None, phenotype_class="IM"):
    return VariantRecord(
        rsid="rs0",
        chromosome="22",
        position=1000,
        ref_allele="C",
        alt_allele="T",
        gene=gene,
        star_allele=star_allele,
        phenotype_class=phenotype_class,
        activity=activity,
    )


@pytest.mark.parametrize(
    "mean, expected",
    [
        (0, "PM"),
        (0.3, "PM"),
        (0.5, "IM"),
        (0.99, "IM"),
        (1.0, "NM"),
        (1.5, "RM"),
        (2.0, "URM"),
        (3.0, "URM"),
    ],
)
def test_phenotype_boundaries_from_single_score(mean, expected):
    assert activity_to_phenotype(mean) == expected
    call = classify_phenotype([make_record(activity=mean)], "CYP2D6")
    assert call.phenotype == expected


def test_boundaries_are_exact_not_tolerant():
    # Just above 1.0 is already Rapid; just below is Intermediate
    assert activity_to_phenotype(1.0000001) == "RM"
    assert activity_to_phenotype(0.9999999) == "IM"


def test_mean_of_multiple_scores():
    records = [make_record(activity=0.0), make_record(activity=1.0)]
    call = classify_phenotype(records, "CYP2D6")
    assert call.activity_score == 0.5
    assert call.phenotype == "IM"


class TestActivityProfile:

    def test_no_scores_defaults_to_baseline(self):
        records = [make_record(activity=None, phenotype_class="PM")]
        profile = build_activity_profile(records, "CYP2D6")
        assert profile.mean_activity == 1.0
        assert profile.scored is False
        assert classify_phenotype(records, "CYP2D6").phenotype == "NM"

    def test_scores_averaging_to_one_are_not_defaulted(self):
        records = [make_record(activity=0.5), make_record(activity=1.5)]
        profile = build_activity_profile(records, "CYP2D6")
        assert profile.mean_activity == 1.0
        assert profile.scored is True
        assert classify_phenotype(records, "CYP2D6").phenotype == "NM"

    def test_unscored_records_are_excluded_not_zero(self):
        records = [make_record(activity=1.5), make_record(activity=None)]
        profile = build_activity_profile(records, "CYP2D6")
        assert profile.mean_activity == 1.5
        assert len(profile.variants) == 2

    def test_filters_gene_and_unknown_class(self):
        records = [
            make_record(gene="CYP2D6", activity=0.0, phenotype_class="PM"),
            make_record(gene="CYP2D6", activity=2.0, phenotype_class="Unknown"),
            make_record(gene="CYP2C19", activity=2.0, phenotype_class="RM"),
        ]
        profile = build_activity_profile(records, "CYP2D6")
        assert len(profile.variants) == 1
        assert profile.mean_activity == 0.0


class TestDiplotype:

    def test_no_alleles(self):
        assert build_diplotype([]) == "*1/*1"

    def test_single_allele_paired_with_wildtype(self):
        assert build_diplotype(["*4"]) == "*1/*4"

    def test_first_two_alleles_used(self):
        assert build_diplotype(["*4", "*10", "*41"]) == "*4/*10"

    def test_unknown_star_alleles_ignored(self):
        records = [
            make_record(star_allele="Unknown", activity=0.5),
            make_record(star_allele="*10", activity=0.5),
        ]
        assert classify_phenotype(records, "CYP2D6").diplotype == "*1/*10"


def test_no_gene_variants_is_assumed_normal():
    call = classify_phenotype([make_record(gene="TPMT", activity=0.0)], "CYP2D6")
    assert call.phenotype == "NM"
    assert call.diplotype == "*1/*1"
    assert call.gene_variants == []
    assert call.activity_score is None


def test_only_unknown_class_variants_is_assumed_normal():
    records = [make_record(phenotype_class="Unknown", star_allele="*4")]
    call = classify_phenotype(records, "CYP2D6")
    assert call.phenotype == "NM"
    assert call.diplotype == "*1/*1"
