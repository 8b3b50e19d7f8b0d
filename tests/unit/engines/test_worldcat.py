"""Tests for the WorldCat SRU engine: CQL translation, pagination and normalization."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from unittest.mock import AsyncMock
from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest

from bibsearch.config.engines import WorldcatSruDcConfig
from bibsearch.engines.base.exceptions import FetchError, InvalidIdentifier, NotFound
from bibsearch.engines.base.xmlutil import strip_namespaces
from bibsearch.engines.worldcat_sru_dc.engine import WorldcatSruDcEngine
from bibsearch.engines.worldcat_sru_dc.normalizer import parse_search_response
from bibsearch.engines.worldcat_sru_dc.translator import (
    construct_cql_query,
    construct_query_params,
    cql_escape,
    tokenize_keywords,
)
from bibsearch.models.query import Query, SearchFilters, SemanticField

# ── Fixtures ──────────────────────────────────────────────────────────────────


def sru_response(*records: str, count: int | None = None) -> str:
    number = len(records) if count is None else count
    wrapped = "".join(
        "<record><recordSchema>info:srw/schema/1/dc</recordSchema>"
        f"<recordData>{r}</recordData></record>"
        for r in records
    )
    return (
        '<searchRetrieveResponse xmlns="http://www.loc.gov/zing/srw/">'
        "<version>1.1</version>"
        f"<numberOfRecords>{number}</numberOfRecords>"
        f"<records>{wrapped}</records>"
        "</searchRetrieveResponse>"
    )


DC_RECORD = """
<oclcdcs xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:oclcterms="http://purl.org/oclc/terms/">
  <dc:title>Manufacturing consent : the political economy of the mass media</dc:title>
  <dc:creator>Herman, Edward S.</dc:creator>
  <dc:contributor>Chomsky, Noam.</dc:contributor>
  <dc:publisher>Pantheon Books</dc:publisher>
  <dc:date>c1988.</dc:date>
  <dc:description>Includes bibliographical references.</dc:description>
  <dc:description>Index.</dc:description>
  <dc:identifier>0394549260</dc:identifier>
  <dc:language xsi:type="http://purl.org/dc/terms/ISO639-2"
      xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">eng</dc:language>
  <dc:subject>Mass media -- Political aspects</dc:subject>
  <dc:type>Text</dc:type>
  <oclcterms:recordIdentifier>17618449</oclcterms:recordIdentifier>
</oclcdcs>
"""

DIAGNOSTIC = """
<searchRetrieveResponse xmlns="http://www.loc.gov/zing/srw/">
  <version>1.1</version>
  <numberOfRecords>0</numberOfRecords>
  <diagnostics xmlns:diag="http://www.loc.gov/zing/srw/diagnostic/">
    <diag:diagnostic>
      <diag:uri>info:srw/diagnostic/1/3</diag:uri>
      <diag:message>Unsupported operation</diag:message>
      <diag:details>wskey is invalid</diag:details>
    </diag:diagnostic>
  </diagnostics>
</searchRetrieveResponse>
"""


@pytest.fixture
def engine(worldcat_config: WorldcatSruDcConfig, mock_client: AsyncMock) -> WorldcatSruDcEngine:
    return WorldcatSruDcEngine(worldcat_config, engine_id="test_worldcat", client=mock_client)


def _sent_params(mock_client: AsyncMock) -> dict[str, str]:
    return dict(parse_qsl(urlsplit(mock_client.get.call_args.args[0]).query))


# ── CQL construction ─────────────────────────────────────────────────────────


class TestCql:
    def test_tokenize_keeps_phrases(self) -> None:
        assert tokenize_keywords('alpha "one two" beta') == ["alpha", "one two", "beta"]

    def test_escape(self) -> None:
        assert cql_escape('say "hi" \\ bye') == 'say \\"hi\\" \\\\ bye'

    def test_free_text_one_clause_per_term(self) -> None:
        cql = construct_cql_query(Query(keywords='alpha\'s beta "one two" thr"ee'))
        clauses = cql.split(" AND ")

        assert clauses == [
            'srw.kw = "alpha\'s"',
            'srw.kw = "beta"',
            'srw.kw = "one two"',
            'srw.kw = "thr\\"ee"',
        ]

    @pytest.mark.parametrize(
        "text,n",
        [("cancer", 1), ("breast cancer therapy", 3), ('"breast cancer" therapy', 2)],
    )
    def test_clause_count_matches_terms(self, text: str, n: int) -> None:
        clauses = construct_cql_query(Query(keywords=text)).split(" AND ")
        assert len(clauses) == n
        assert all(c.startswith('srw.kw = "') and c.endswith('"') for c in clauses)

    def test_field_qualified(self) -> None:
        assert construct_cql_query(Query(keywords="cancer therapy", search_field="srw.ti")) == (
            'srw.ti = "cancer therapy"'
        )

    def test_semantic_field(self) -> None:
        query = Query(keywords="chomsky", semantic_field=SemanticField.AUTHOR)
        assert construct_cql_query(query) == 'srw.au = "chomsky"'

    def test_multi_field(self) -> None:
        cql = construct_cql_query(Query(keywords={"srw.ti": "manufacturing", "srw.au": "chomsky"}))
        clauses = cql.split(" AND ")

        assert len(clauses) == 2
        assert sorted(clauses) == ['srw.au = "chomsky"', 'srw.ti = "manufacturing"']

    def test_multi_field_semantic_keys(self) -> None:
        cql = construct_cql_query(Query(keywords={"title": "manufacturing", "isbn": "0394549260"}))
        assert set(cql.split(" AND ")) == {'srw.ti = "manufacturing"', 'srw.bn = "0394549260"'}

    def test_static_helper(self) -> None:
        assert WorldcatSruDcEngine.construct_cql_query(Query(keywords="x")) == 'srw.kw = "x"'


# ── Request parameters ───────────────────────────────────────────────────────


class TestQueryParams:
    def test_basic_params(self, worldcat_config: WorldcatSruDcConfig) -> None:
        params, pagination = construct_query_params(Query(keywords="cancer", start=20, per_page=10), worldcat_config)
        as_dict = dict(params)

        assert as_dict["wskey"] == "secret-wskey"
        assert as_dict["recordSchema"] == "info:srw/schema/1/dc"
        assert as_dict["startRecord"] == "21"
        assert as_dict["maximumRecords"] == "10"
        assert "servicelevel" not in as_dict
        assert pagination.current_page == 3

    def test_start_record_clamped(self, worldcat_config: WorldcatSruDcConfig) -> None:
        params, pagination = construct_query_params(Query(keywords="cancer", start=100000, per_page=10), worldcat_config)

        assert dict(params)["startRecord"] == "9999"
        assert pagination.start_record == 9999
        assert pagination.current_page == 1000

    @pytest.mark.parametrize(
        "sort,expected",
        [
            ("relevance", "relevance"),
            ("date_desc", "Date,,0"),
            ("date_asc", "Date,,1"),
            ("title_asc", "Title,,1"),
            ("author_asc", "Author,,1"),
        ],
    )
    def test_sort_keys(self, worldcat_config: WorldcatSruDcConfig, sort: str, expected: str) -> None:
        params, _ = construct_query_params(Query(keywords="cancer", sort=sort), worldcat_config)
        assert dict(params)["sortKeys"] == expected

    def test_auth_from_config(self) -> None:
        config = WorldcatSruDcConfig(api_key="k", auth=True)
        params, _ = construct_query_params(Query(keywords="cancer"), config)
        assert dict(params)["servicelevel"] == "full"

    def test_auth_per_call_override(self, worldcat_config: WorldcatSruDcConfig) -> None:
        on, _ = construct_query_params(
            Query(keywords="cancer", filters=SearchFilters(auth=True)), worldcat_config
        )
        off, _ = construct_query_params(
            Query(keywords="cancer", filters=SearchFilters(auth=False)),
            WorldcatSruDcConfig(api_key="k", auth=True),
        )
        assert dict(on)["servicelevel"] == "full"
        assert "servicelevel" not in dict(off)


# ── Normalizer ───────────────────────────────────────────────────────────────


class TestNormalizer:
    def test_record_fields(self) -> None:
        root = strip_namespaces(ET.fromstring(sru_response(DC_RECORD, count=57)))
        total, items = parse_search_response(root)

        assert total == 57
        item = items[0]
        assert item.title == "Manufacturing consent : the political economy of the mass media"
        assert [a.display for a in item.authors] == ["Herman, Edward S.", "Chomsky, Noam."]
        assert item.publisher == "Pantheon Books"
        assert item.year == "1988"
        assert item.abstract == "Includes bibliographical references. Index."
        assert item.isbn == "0394549260"
        assert item.language_code == "eng"
        assert item.format_str == "Text"
        assert item.format is None
        assert item.oclcnum == "17618449"
        assert item.unique_id == "17618449"
        assert item.link == "https://worldcat.org/oclc/17618449"
        assert item.custom_data["subjects"] == ["Mass media -- Political aspects"]


# ── Engine ───────────────────────────────────────────────────────────────────


class TestWorldcatEngine:
    def test_name(self, engine: WorldcatSruDcEngine) -> None:
        assert engine.name == "worldcat_sru_dc"

    def test_query_url(self, engine: WorldcatSruDcEngine) -> None:
        url = engine.construct_query_url(Query(keywords="cancer"))
        assert url.startswith("http://www.worldcat.org/webservices/catalog/search/sru?")
        assert dict(parse_qsl(urlsplit(url).query))["query"] == 'srw.kw = "cancer"'

    @pytest.mark.asyncio
    async def test_search_success(self, engine: WorldcatSruDcEngine, mock_client: AsyncMock, xml_response) -> None:
        mock_client.get.return_value = xml_response(sru_response(DC_RECORD, count=57))

        results = await engine.search(Query(keywords="manufacturing consent"))

        assert results.failed is False
        assert results.total_items == 57
        assert results.first is not None
        assert results.first.engine_id == "test_worldcat"
        assert _sent_params(mock_client)["query"] == 'srw.kw = "manufacturing" AND srw.kw = "consent"'

    @pytest.mark.asyncio
    async def test_search_pagination_clamped(
        self, engine: WorldcatSruDcEngine, mock_client: AsyncMock, xml_response
    ) -> None:
        mock_client.get.return_value = xml_response(sru_response(count=0))

        results = await engine.search(Query(keywords="cancer", start=100000, per_page=10))

        assert results.pagination.start_record == 9999
        assert results.pagination.current_page == 1000
        assert _sent_params(mock_client)["startRecord"] == "9999"

    @pytest.mark.asyncio
    async def test_diagnostic_becomes_failed_result_set(
        self, engine: WorldcatSruDcEngine, mock_client: AsyncMock, xml_response
    ) -> None:
        mock_client.get.return_value = xml_response(DIAGNOSTIC)

        results = await engine.search(Query(keywords="cancer", start=100000))

        assert results.failed is True
        assert results.items == []
        assert results.error is not None
        assert results.error["error_info"] == "Unsupported operation: wskey is invalid"
        assert "secret-wskey" not in results.error["api_url"]
        assert results.pagination.start_record == 9999

    @pytest.mark.asyncio
    async def test_connection_error(self, engine: WorldcatSruDcEngine, mock_client: AsyncMock) -> None:
        mock_client.get.side_effect = httpx.ConnectError("Connection refused")

        results = await engine.search(Query(keywords="cancer"))

        assert results.failed is True
        assert results.error is not None
        assert results.error["exception"] == "ConnectError"

    @pytest.mark.asyncio
    async def test_get_round_trip(self, engine: WorldcatSruDcEngine, mock_client: AsyncMock, xml_response) -> None:
        mock_client.get.return_value = xml_response(sru_response(DC_RECORD))

        results = await engine.search(Query(keywords="manufacturing consent"))
        original = results.first
        assert original is not None and original.unique_id is not None
        item = await engine.get(original.unique_id)

        assert item.unique_id == original.unique_id
        assert _sent_params(mock_client)["query"] == 'srw.no = "17618449"'

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identifier", ["   ", "abc", "1761a449", "ocm17618449"])
    async def test_get_malformed_identifier(
        self, engine: WorldcatSruDcEngine, mock_client: AsyncMock, identifier: str
    ) -> None:
        with pytest.raises(InvalidIdentifier):
            await engine.get(identifier)
        mock_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_not_found(self, engine: WorldcatSruDcEngine, mock_client: AsyncMock, xml_response) -> None:
        mock_client.get.return_value = xml_response(sru_response(count=0))

        with pytest.raises(NotFound):
            await engine.get("1")

    @pytest.mark.asyncio
    async def test_get_diagnostic_raises(
        self, engine: WorldcatSruDcEngine, mock_client: AsyncMock, xml_response
    ) -> None:
        mock_client.get.return_value = xml_response(DIAGNOSTIC)

        with pytest.raises(FetchError, match="wskey is invalid"):
            await engine.get("17618449")
