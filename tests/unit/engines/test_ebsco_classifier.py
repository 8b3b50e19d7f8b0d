"""Tests for the EBSCO format classifier."""

from __future__ import annotations

import pytest

from bibsearch.engines.ebsco_host.classifier import (
    DEFAULT_RULES,
    FormatClassifier,
    FormatRule,
    RecordFacts,
    has_dissertation_metadata,
    has_publisher_and_year,
    is_contained,
    is_contained_in_book,
    is_explicit_article,
    is_explicit_book,
    is_explicit_chapter,
    is_explicit_dissertation,
)
from bibsearch.models.result import Format


@pytest.fixture
def classifier() -> FormatClassifier:
    return FormatClassifier()


# ── Regression fixtures ──────────────────────────────────────────────────────


class TestRegressions:
    def test_contained_dissertation_is_dissertation_not_book_item(self, classifier: FormatClassifier) -> None:
        facts = RecordFacts(
            pubtypes=("book",),
            title="Sonata form in the late works of Haydn",
            source_title="Dissertation Abstracts International",
            publisher="University of Michigan (Ph.D. dissertation)",
            year="1998",
        )
        assert classifier.classify(facts) == Format.DISSERTATION

    def test_dissertation_info_element_wins_over_source_title(self, classifier: FormatClassifier) -> None:
        facts = RecordFacts(source_title="Some Collection", has_dissertation_info=True)
        assert classifier.classify(facts) == Format.DISSERTATION

    def test_publisher_and_year_only_is_book(self, classifier: FormatClassifier) -> None:
        facts = RecordFacts(title="Music in the Baroque", publisher="W. W. Norton", year="1947")
        assert classifier.classify(facts) == Format.BOOK

    def test_chapter_labelled_as_book_is_book_item(self, classifier: FormatClassifier) -> None:
        facts = RecordFacts(
            pubtypes=("book",),
            title="The fugue in Bach",
            source_title="Essays on Baroque music",
            publisher="Oxford University Press",
            year="2001",
        )
        assert classifier.classify(facts) == Format.BOOK_ITEM

    def test_stated_report_beats_publisher_and_year(self, classifier: FormatClassifier) -> None:
        facts = RecordFacts(pubtypes=("report",), publisher="US GPO", year="2003")
        assert classifier.classify(facts) == Format.REPORT

    @pytest.mark.parametrize("publisher", ["Master's Press", "Thesis Publishers", "Doctoral Books Ltd."])
    def test_degree_like_publisher_name_is_still_a_book(self, classifier: FormatClassifier, publisher: str) -> None:
        facts = RecordFacts(pubtypes=("book",), title="Counterpoint", publisher=publisher, year="1990")
        assert classifier.classify(facts) == Format.BOOK

    def test_degree_like_publisher_of_chapter_is_book_item(self, classifier: FormatClassifier) -> None:
        facts = RecordFacts(source_title="Essays on Bach", pubtypes=("book",), publisher="Master's Press")
        assert classifier.classify(facts) == Format.BOOK_ITEM


# ── Individual rules ─────────────────────────────────────────────────────────


class TestRules:
    def test_explicit_dissertation(self) -> None:
        assert is_explicit_dissertation(RecordFacts(doctypes=("doctoral dissertation",)))
        assert is_explicit_dissertation(RecordFacts(pubtypes=("thesis",)))
        assert not is_explicit_dissertation(RecordFacts(pubtypes=("book",)))

    def test_explicit_chapter_only_looks_at_doctypes(self) -> None:
        assert is_explicit_chapter(RecordFacts(doctypes=("book chapter",)))
        assert not is_explicit_chapter(RecordFacts(pubtypes=("book chapter",)))

    def test_explicit_article(self) -> None:
        assert is_explicit_article(RecordFacts(pubtypes=("academic journal",)))
        assert not is_explicit_article(RecordFacts(pubtypes=("book",)))

    def test_dissertation_metadata_from_publisher(self) -> None:
        assert has_dissertation_metadata(RecordFacts(publisher="PhD thesis, Yale University"))
        assert not has_dissertation_metadata(RecordFacts(publisher="Yale University Press"))

    @pytest.mark.parametrize(
        "publisher",
        ["Harvard University (Ph.D. dissertation)", "Master's thesis, McGill", "Thesis (M.A.)--Univ. of Toronto"],
    )
    def test_degree_phrase_in_publisher(self, publisher: str) -> None:
        assert has_dissertation_metadata(RecordFacts(publisher=publisher))

    @pytest.mark.parametrize("publisher", ["Master's Press", "Thesis Publishers", "Dissertation.com"])
    def test_bare_degree_word_in_publisher_is_not_enough(self, publisher: str) -> None:
        assert not has_dissertation_metadata(RecordFacts(publisher=publisher))

    def test_dissertation_metadata_from_notes(self) -> None:
        assert has_dissertation_metadata(RecordFacts(notes=("Doctoral research, 1999",)))

    def test_contained_in_book(self) -> None:
        assert is_contained_in_book(RecordFacts(pubtypes=("book",), source_title="Collected essays"))
        assert not is_contained_in_book(RecordFacts(pubtypes=("book",)))

    def test_contained(self) -> None:
        assert is_contained(RecordFacts(source_title="Journal of Musicology"))
        assert not is_contained(RecordFacts())

    def test_explicit_book(self) -> None:
        assert is_explicit_book(RecordFacts(pubtypes=("ebook",)))
        assert not is_explicit_book(RecordFacts(pubtypes=("ebook",), source_title="Series"))

    def test_publisher_and_year(self) -> None:
        assert has_publisher_and_year(RecordFacts(publisher="Norton", year="1947"))
        assert not has_publisher_and_year(RecordFacts(publisher="Norton"))
        assert not has_publisher_and_year(RecordFacts(publisher="Norton", year="1947", source_title="X"))


# ── Classifier behavior ──────────────────────────────────────────────────────


class TestFormatClassifier:
    def test_default_rule_order(self, classifier: FormatClassifier) -> None:
        names = [rule.name for rule in classifier.rules]
        assert names[:7] == [
            "explicit_dissertation",
            "explicit_chapter",
            "explicit_article",
            "dissertation_metadata",
            "contained_in_book",
            "contained",
            "explicit_book",
        ]
        assert names[-1] == "publisher_and_year"
        assert classifier.rules == DEFAULT_RULES

    def test_fallback_is_article(self, classifier: FormatClassifier) -> None:
        assert classifier.classify(RecordFacts(title="Untyped")) == Format.ARTICLE
        assert classifier.matching_rule(RecordFacts(title="Untyped")) is None

    def test_matching_rule_names_the_decision(self, classifier: FormatClassifier) -> None:
        rule = classifier.matching_rule(RecordFacts(source_title="Journal of Musicology"))
        assert rule is not None
        assert rule.name == "contained"

    @pytest.mark.parametrize(
        "stated,expected",
        [
            ("conference paper", Format.CONFERENCE_PAPER),
            ("video", Format.VIDEO),
            ("sound recording", Format.AUDIO_RECORDING),
            ("score", Format.MUSICAL_SCORE),
            ("serial", Format.SERIAL),
        ],
    )
    def test_stated_types(self, classifier: FormatClassifier, stated: str, expected: Format) -> None:
        assert classifier.classify(RecordFacts(pubtypes=(stated,))) == expected

    def test_with_rule_inserts_before(self, classifier: FormatClassifier) -> None:
        rule = FormatRule("festschrift", Format.BOOK, lambda facts: "festschrift" in (facts.title or "").lower())
        extended = classifier.with_rule(rule, before="contained")
        facts = RecordFacts(title="Festschrift for J. LaRue", source_title="Series in musicology")

        assert classifier.classify(facts) == Format.ARTICLE
        assert extended.classify(facts) == Format.BOOK
        names = [r.name for r in extended.rules]
        assert names.index("festschrift") == names.index("contained") - 1

    def test_with_rule_appends_by_default(self, classifier: FormatClassifier) -> None:
        rule = FormatRule("catch_all", Format.SERIAL, lambda facts: True)
        extended = classifier.with_rule(rule)
        assert extended.rules[-1] is rule
        assert extended.classify(RecordFacts()) == Format.SERIAL

    def test_with_rule_unknown_anchor(self, classifier: FormatClassifier) -> None:
        rule = FormatRule("x", Format.BOOK, lambda facts: True)
        with pytest.raises(KeyError, match="no_such_rule"):
            classifier.with_rule(rule, before="no_such_rule")

    def test_custom_fallback(self) -> None:
        classifier = FormatClassifier(rules=(), fallback=Format.BOOK)
        assert classifier.classify(RecordFacts()) == Format.BOOK
