"""
VCF Parser Module
Turns variant-call text into VariantRecords annotated from the knowledge base.
Malformed lines are reported and skipped; they never abort the file.
"""
from __future__ import annotations

import logging
from typing import Optional

from pharmaguard.models import UNKNOWN, ParseResult, VariantRecord
from pharmaguard.modules.knowledge_base import KnowledgeBase

logger = logging.getLogger(__name__)

RS_PREFIX = "rs"
MIN_FIELDS = 8
# Files shorter than this are not failed for yielding zero variants
SMALL_FILE_LINE_LIMIT = 20

NOVEL_SIGNIFICANCE = "Novel or uncharacterized variant"
GENE_ONLY_SIGNIFICANCE = "Annotated by gene only"


class VCFParseError(Exception):
    """Raised when the input yields no usable variants at all."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class InfoTags:
    """
    The KEY=VALUE tags of one INFO column.
    Keys are upper-cased on insert and on lookup, so `GENE=` and `gene=` are the same tag.
    """

    def __init__(self, info_str: str = ""):
        self._tags: dict[str, str] = {}
        if info_str in (".", ""):
            return
        for token in info_str.split(";"):
            if "=" not in token:
                continue
            key, _, value = token.partition("=")
            self._tags[key.strip().upper()] = value.strip()

    def get(self, key: str) -> Optional[str]:
        """Return the tag value, or None when the tag is missing or blank."""
        value = self._tags.get(key.strip().upper())
        if value is None or value == "":
            return None
        return value

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._tags)


def _first_present(*candidates: Optional[str], default: str = "") -> str:
    """First candidate that is neither None nor blank, else `default`."""
    for candidate in candidates:
        if candidate is not None and candidate.strip() != "":
            return candidate
    return default


def _id_column(value: str) -> Optional[str]:
    # "." is the VCF missing-value marker
    return None if value.strip() in ("", ".") else value.strip()


def _position(value: str) -> int:
    """Integer POS, or 0 when the column is missing or not numeric."""
    value = value.strip()
    if value.isdigit():
        return int(value)
    logger.warning("Non-numeric position %r, recording as 0.", value)
    return 0


def _decode(file_content: bytes | str) -> str:
    if isinstance(file_content, str):
        return file_content
    try:
        return file_content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return file_content.decode("latin-1")


def _build_record(fields: list[str], kb: KnowledgeBase) -> Optional[VariantRecord]:
    """Build at most one VariantRecord from the columns of a data line."""
    chrom = fields[0].strip()
    pos = _position(fields[1])
    ref = fields[3].strip()
    alt = fields[4].strip()
    tags = InfoTags(fields[7].strip())

    rsid = _first_present(tags.get("RS"), _id_column(fields[2])).lower()
    info_gene = tags.get("GENE")
    info_gene = info_gene.upper() if info_gene is not None else None
    info_star = tags.get("STAR")

    location = dict(chromosome=chrom, position=pos, ref_allele=ref, alt_allele=alt)

    if rsid.startswith(RS_PREFIX):
        annotation = kb.lookup_variant(rsid)
        if annotation is not None:
            return VariantRecord(
                rsid=rsid,
                gene=_first_present(info_gene, default=annotation.gene),
                star_allele=_first_present(info_star, default=annotation.star),
                effect=annotation.effect,
                zygosity=annotation.zygosity,
                clinical_significance=annotation.significance,
                phenotype_class=annotation.phenotype_class,
                activity=annotation.activity,
                **location,
            )
        logger.debug("Unannotated variant %s, keeping as Unknown.", rsid)
        return VariantRecord(
            rsid=rsid,
            gene=_first_present(info_gene, default=UNKNOWN),
            star_allele=_first_present(info_star, default=UNKNOWN),
            clinical_significance=NOVEL_SIGNIFICANCE,
            **location,
        )

    if info_gene is not None:
        return VariantRecord(
            rsid=_first_present(rsid, default="unknown"),
            gene=info_gene,
            star_allele=_first_present(info_star, default=UNKNOWN),
            clinical_significance=GENE_ONLY_SIGNIFICANCE,
            **location,
        )

    # No identifier and no gene: nothing to annotate
    return None


def parse_vcf(file_content: bytes | str, kb: KnowledgeBase) -> ParseResult:
    """
    Parse variant-call text into annotated records.

    Args:
        file_content: Raw bytes or string content of the VCF file.
        kb: Knowledge base used to annotate known rsIDs.

    Returns:
        ParseResult with the records in file order, the `success` flag and
        one error string per malformed line. Never raises for bad lines.
    """
    text = _decode(file_content)
    lines = text.split("\n")

    records: list[VariantRecord] = []
    errors: list[str] = []
    vcf_version = "unknown"

    for lineno, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith("##"):
            if line.startswith("##fileformat=VCFv"):
                vcf_version = line.split("VCFv", 1)[-1].strip()
            continue
        if line.startswith("#"):
            # #CHROM header and any other comment line
            continue

        fields = line.split("\t")
        if len(fields) < MIN_FIELDS:
            errors.append(f"Line {lineno}: insufficient fields ({len(fields)} < {MIN_FIELDS})")
            logger.warning("Line %d: insufficient columns (%d), skipping.", lineno, len(fields))
            continue

        try:
            record = _build_record(fields, kb)
        except Exception as exc:
            errors.append(f"Line {lineno}: {exc}")
            logger.warning("Line %d: parse error: %s", lineno, exc)
            continue

        if record is not None:
            records.append(record)

    success = len(records) > 0 or len(lines) < SMALL_FILE_LINE_LIMIT

    logger.info(
        "VCF parse complete: %d lines, %d variants, %d errors, success=%s.",
        len(lines), len(records), len(errors), success,
    )
    return ParseResult(
        records=records,
        success=success,
        errors=errors,
        vcf_version=vcf_version,
        total_lines=len(lines),
    )


def ensure_usable(result: ParseResult) -> ParseResult:
    """Raise VCFParseError when the parse produced nothing usable."""
    if not result.records and not result.success:
        detail = "; ".join(result.errors) if result.errors else "no variant records found"
        raise VCFParseError(f"Failed to parse VCF file: {detail}", result.errors)
    return result
