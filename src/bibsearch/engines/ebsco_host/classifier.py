"""Format Classifier — Decides book / book_item / article / dissertation for EBSCO records.

EBSCO records do not reliably say what they are.  Databases such as RILM
label chapters as books, books as chapters, and dissertations as either.
Classification is therefore an explicit, ordered list of rules over a
normalized ``RecordFacts``; the first rule that matches wins.

Default rule order:
  1. explicit_dissertation   — pubtype/doctype names a dissertation or thesis
  2. explicit_chapter        — doctype names a chapter or essay in a book
  3. explicit_article        — pubtype/doctype names a journal or article
  4. dissertation_metadata   — dissertation element, or degree wording
                               in the notes, or a degree phrase in the publisher
  5. contained_in_book       — has a source_title and a book-ish type → book_item
  6. contained               — has a source_title → article
  7. explicit_book           — book type with no source_title
  8. stated_<format>         — one rule per other recognizable stated type
  9. publisher_and_year      — publisher + year with no source_title → book

Records no rule claims fall back to ``Format.ARTICLE``.  Misclassified
records get a new rule (``FormatClassifier.with_rule``) plus a regression
fixture rather than another branch in an existing rule.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from bibsearch.models.result import Format

logger = logging.getLogger(__name__)

_DEGREE_WORDING = re.compile(
    r"\b(ph\.?\s?d|doctoral|doctorate|dissertation|thesis|theses|d\.?\s?phil|master['\u2019]?s)\b",
    re.IGNORECASE,
)
_DEGREE = r"(?:ph\.?\s?d\.?|d\.?\s?phil\.?|ed\.?\s?d\.?|m\.?\s?a\.?|m\.?\s?sc?\.?|doctoral|master['\u2019]?s)"
# "Ph.D. dissertation", "Master's thesis", "Thesis (M.A.)"; a bare "Thesis" or "Master's" is a publisher name.
_DEGREE_PHRASE = re.compile(
    rf"\b{_DEGREE}\s*(?:dissertation|thesis)\b|\b(?:dissertation|thesis)\s*\(\s*{_DEGREE}\s*\)",
    re.IGNORECASE,
)

_DISSERTATION_TYPES = ("dissertation", "thesis", "theses")
_CHAPTER_TYPES = frozenset({"book chapter", "chapter", "essay", "book article", "article in book", "book entry"})
_ARTICLE_TYPES = frozenset(
    {
        "academic journal",
        "journal",
        "journal article",
        "article",
        "periodical",
        "magazine",
        "newspaper",
        "trade publication",
        "review",
        "book review",
        "editorial",
    }
)
_BOOK_TYPES = frozenset({"book", "books", "ebook", "reference book", "monograph", "book collection"})

STATED_TYPE_FORMATS: dict[str, Format] = {
    "conference paper": Format.CONFERENCE_PAPER,
    "conference proceeding": Format.CONFERENCE_PAPER,
    "conference proceedings": Format.CONFERENCE_PAPER,
    "proceeding": Format.CONFERENCE_PAPER,
    "report": Format.REPORT,
    "government document": Format.REPORT,
    "serial": Format.SERIAL,
    "video": Format.VIDEO,
    "audio": Format.AUDIO_RECORDING,
    "sound recording": Format.AUDIO_RECORDING,
    "music score": Format.MUSICAL_SCORE,
    "score": Format.MUSICAL_SCORE,
}


@dataclass(frozen=True)
class RecordFacts:
    """The metadata of one EBSCO record that classification looks at.

    Types are lower-cased and stripped by ``extract_facts``.
    """

    pubtypes: tuple[str, ...] = ()
    doctypes: tuple[str, ...] = ()
    title: str | None = None
    source_title: str | None = None
    publisher: str | None = None
    year: str | None = None
    notes: tuple[str, ...] = ()
    has_dissertation_info: bool = False

    @property
    def types(self) -> tuple[str, ...]:
        return self.doctypes + self.pubtypes


@dataclass(frozen=True)
class FormatRule:
    """One classification rule: if ``predicate(facts)`` holds, the record is ``format``."""

    name: str
    format: Format
    predicate: Callable[[RecordFacts], bool] = field(compare=False)

    def matches(self, facts: RecordFacts) -> bool:
        return self.predicate(facts)


def _any_type_in(types: Sequence[str], vocabulary: frozenset[str]) -> bool:
    return any(t in vocabulary for t in types)


def is_explicit_dissertation(facts: RecordFacts) -> bool:
    return any(word in t for t in facts.types for word in _DISSERTATION_TYPES)


def is_explicit_chapter(facts: RecordFacts) -> bool:
    return _any_type_in(facts.doctypes, _CHAPTER_TYPES)


def is_explicit_article(facts: RecordFacts) -> bool:
    return _any_type_in(facts.types, _ARTICLE_TYPES)


def has_dissertation_metadata(facts: RecordFacts) -> bool:
    if facts.has_dissertation_info:
        return True
    if facts.publisher and _DEGREE_PHRASE.search(facts.publisher):
        return True
    return any(_DEGREE_WORDING.search(note) for note in facts.notes)


def is_contained_in_book(facts: RecordFacts) -> bool:
    return facts.source_title is not None and _any_type_in(facts.types, _BOOK_TYPES)


def is_contained(facts: RecordFacts) -> bool:
    return facts.source_title is not None


def is_explicit_book(facts: RecordFacts) -> bool:
    return facts.source_title is None and _any_type_in(facts.types, _BOOK_TYPES)


def has_publisher_and_year(facts: RecordFacts) -> bool:
    return facts.source_title is None and facts.publisher is not None and facts.year is not None


def stated_type_rules() -> tuple[FormatRule, ...]:
    """One rule per format in ``STATED_TYPE_FORMATS``, in first-seen order."""
    rules: dict[Format, frozenset[str]] = {}
    for stated, fmt in STATED_TYPE_FORMATS.items():
        rules[fmt] = rules.get(fmt, frozenset()) | {stated}
    return tuple(
        FormatRule(f"stated_{fmt.value}", fmt, lambda facts, vocab=vocab: _any_type_in(facts.types, vocab))
        for fmt, vocab in rules.items()
    )


DEFAULT_RULES: tuple[FormatRule, ...] = (
    FormatRule("explicit_dissertation", Format.DISSERTATION, is_explicit_dissertation),
    FormatRule("explicit_chapter", Format.BOOK_ITEM, is_explicit_chapter),
    FormatRule("explicit_article", Format.ARTICLE, is_explicit_article),
    FormatRule("dissertation_metadata", Format.DISSERTATION, has_dissertation_metadata),
    FormatRule("contained_in_book", Format.BOOK_ITEM, is_contained_in_book),
    FormatRule("contained", Format.ARTICLE, is_contained),
    FormatRule("explicit_book", Format.BOOK, is_explicit_book),
    *stated_type_rules(),
    FormatRule("publisher_and_year", Format.BOOK, has_publisher_and_year),
)


class FormatClassifier:
    """Ordered, first-match-wins format classifier.

    Args:
        rules: Rules in priority order. Defaults to ``DEFAULT_RULES``.
        fallback: Format used when no rule matches.
    """

    def __init__(self, rules: Sequence[FormatRule] = DEFAULT_RULES, fallback: Format = Format.ARTICLE) -> None:
        self._rules = tuple(rules)
        self._fallback = fallback

    @property
    def rules(self) -> tuple[FormatRule, ...]:
        return self._rules

    def classify(self, facts: RecordFacts) -> Format:
        """Return the format of the first matching rule."""
        rule = self.matching_rule(facts)
        if rule is not None:
            return rule.format
        return self._fallback

    def matching_rule(self, facts: RecordFacts) -> FormatRule | None:
        """The rule that decides *facts*, or None when the fallback applies."""
        for rule in self._rules:
            if rule.matches(facts):
                logger.debug("Format rule '%s' matched %r", rule.name, facts.title)
                return rule
        return None

    def with_rule(self, rule: FormatRule, before: str | None = None) -> FormatClassifier:
        """A new classifier with *rule* inserted before the rule named *before*.

        Without *before* the rule is appended (lowest priority).

        Raises:
            KeyError: If no rule is named *before*.
        """
        rules = list(self._rules)
        if before is None:
            rules.append(rule)
        else:
            names = [r.name for r in rules]
            if before not in names:
                raise KeyError(f"No format rule named '{before}'. Rules: {names}")
            rules.insert(names.index(before), rule)
        return FormatClassifier(rules, self._fallback)
