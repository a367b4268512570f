"""Tests for the year filter and keyword eligibility screening."""

import pytest

from srma.config.review import ReviewConfig
from srma.core.models import RisRecord
from srma.screening.eligibility import EligibilityScreener, filter_by_year, has_keyword
from srma.screening.models import ExclusionReason

LONG_ABSTRACT = (
    "A machine learning model was trained to predict fermentation yield from sensor data "
    "collected across forty industrial batches."
)


def make_record(
    index: int = 0,
    title: str = "Machine learning for fermentation",
    abstract: str = LONG_ABSTRACT,
    type: str = "JOUR",
    year: str = "2021",
    doi: str = "10.1000/x.1",
) -> RisRecord:
    return RisRecord(
        record_index=index, title=title, abstract=abstract, type=type, publication_year=year, doi=doi
    )


class TestYearFilter:

    def test_inclusive_bounds(self) -> None:
        records = [make_record(i, year=y) for i, y in enumerate(["2014", "2015", "2020", "2024", "2025"])]

        kept = filter_by_year(records, 2015, 2024)

        assert [r.publication_year for r in kept] == ["2015", "2020", "2024"]

    def test_missing_year_is_excluded(self) -> None:
        kept = filter_by_year([make_record(0, year=""), make_record(1, year="2020/01/01")], 2015, 2024)

        assert [r.record_index for r in kept] == [1]

    def test_invalid_range(self) -> None:
        with pytest.raises(ValueError):
            filter_by_year([], 2024, 2015)


class TestEligibilityScreener:

    @pytest.fixture
    def screener(self) -> EligibilityScreener:
        return EligibilityScreener(ReviewConfig())

    def test_eligible_record(self, screener) -> None:
        result = screener.screen_record(make_record())

        assert result.eligible
        assert result.for_meta
        assert result.exclusion_reasons == ()
        assert result.exclusion_reason == ""

    def test_keyword_match_is_case_insensitive(self) -> None:
        assert has_keyword("Deep LEARNING in Brewing", ["deep learning"])
        assert not has_keyword("", ["deep learning"])

    @pytest.mark.parametrize("doc_type", ["REVIEW", "Editorial", "letter", "NOTE"])
    def test_excluded_document_types(self, screener, doc_type: str) -> None:
        result = screener.screen_record(make_record(type=doc_type))

        assert not result.eligible
        assert result.exclusion_reasons == (ExclusionReason.DOCUMENT_TYPE,)

    def test_exclusion_keyword(self, screener) -> None:
        result = screener.screen_record(make_record(title="Retracted: Machine learning for fermentation"))

        assert ExclusionReason.EXCLUSION_KEYWORD in result.exclusion_reasons

    def test_all_failed_criteria_are_recorded(self, screener) -> None:
        result = screener.screen_record(
            make_record(title="Statistical process control", abstract="A survey of quality charts in steelmaking plants.")
        )

        assert result.exclusion_reasons == (ExclusionReason.AI_ABSENT, ExclusionReason.TOPIC_MISMATCH)
        assert result.exclusion_reason == "AI_ABSENT; TOPIC_MISMATCH"

    def test_short_abstract(self, screener) -> None:
        result = screener.screen_record(make_record(abstract="Short."))

        assert not result.eligible
        assert result.exclusion_reasons == (ExclusionReason.ABSTRACT_MISSING,)

    def test_eligible_without_doi_is_not_for_meta(self, screener) -> None:
        result = screener.screen_record(make_record(doi=""))

        assert result.eligible
        assert not result.for_meta

    def test_counts(self, screener) -> None:
        records = [
            make_record(0),
            make_record(1, doi=""),
            make_record(2, type="REVIEW"),
            make_record(3, title="Retracted study of fermentation with machine learning"),
            make_record(4, title="Yield", abstract="Neural network prediction of steel hardness from composition data."),
            make_record(5, abstract="Machine learning for fermentation."),
        ]

        screened, counts = screener.screen(records)

        assert len(screened) == 6
        assert counts.screened == 6
        assert counts.full_text_assessed == 6
        assert counts.eligible == 2
        assert counts.for_meta == 1
        assert counts.excluded_total == 4
        assert counts.excluded_type == 2
        assert counts.excluded_topic_mismatch == 1
        assert counts.excluded_ai_absent == 0
        assert counts.excluded_abstract_only == 1
