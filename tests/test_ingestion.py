"""Tests for candidate sources and ingestion into the store."""

import json
from types import SimpleNamespace

import httpx
import pytest

from newsdesk.batch import BatchProcessor
from newsdesk.config import SourceConfig
from newsdesk.errors import TriggerError
from newsdesk.ingestion import (
    CandidateItem,
    CandidateSource,
    FeedSource,
    IngestCandidateOperation,
    SearchPromptSource,
    WordPressClient,
    import_document,
    parse_search_response,
    run_import,
    select_candidates,
)
from newsdesk.jobs import JobRegistry, NewsImportHandler
from newsdesk.models import ItemStatus, JobParameters, JobSettings, PromptDefinition

from conftest import add_item

RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Housing</title>
<item><title>Rates &amp; homes</title><link>https://example.com/rates</link>
<description>&lt;p&gt;Mortgage rates dipped&lt;/p&gt;</description>
<pubDate>Mon, 03 Jun 2024 08:00:00 GMT</pubDate><guid>rates-1</guid></item>
<item><title>Builders</title><link>https://example.com/builders</link>
<description>Starts rose</description></item>
</channel></rss>"""


class StaticSource(CandidateSource):
    name = "static"

    def __init__(self, candidates=None, error=None):
        self.candidates = candidates or []
        self.error = error

    async def fetch_candidates(self, parameters):
        if self.error is not None:
            raise self.error
        return list(self.candidates)


def candidate(headline, url, score=None, summary=None):
    return CandidateItem(headline=headline, url=url, score=score, summary=summary)


@pytest.fixture
def ingest(store, dedup, clock):
    return IngestCandidateOperation(store, dedup, min_score=0.5, clock=clock)


def test_candidate_accepts_source_field_names():
    item = CandidateItem.model_validate(
        {"title": "T", "link": "https://x", "description": "D", "relevance_score": 0.7}
    )
    assert (item.headline, item.url, item.summary, item.score) == ("T", "https://x", "D", 0.7)
    assert item.missing_fields() == []
    assert CandidateItem().missing_fields() == ["headline", "url"]


def test_select_candidates_filters_before_limit():
    items = [
        candidate("a", "u1", 0.9),
        candidate("b", "u2", 0.1),
        candidate("c", "u3", None),
        candidate("d", "u4", 0.8),
    ]
    kept, low = select_candidates(items, 0.5, 2)
    assert [c.headline for c in kept] == ["a", "c"]
    assert low == 1


@pytest.mark.asyncio
async def test_new_candidate_is_stored_as_discovered(store, ingest, clock):
    result = await ingest.ingest(
        candidate("Rates fall", "https://example.com/a", 0.9, summary="<p>Rates   fell today</p>")
    )

    assert result.outcome == "new"
    item = await store.get_item(result.item_id)
    assert item.status == ItemStatus.DISCOVERED
    assert item.clean_content == "Rates fell today"
    assert item.word_count == 3
    assert item.status_changed_at == clock.now
    assert await store.get_canonical_id(item.content_hash) == item.id


@pytest.mark.asyncio
async def test_duplicate_candidate_is_not_stored(store, ingest):
    first = await ingest.ingest(candidate("A", "https://a", summary="Same   body"))
    second = await ingest.ingest(candidate("B", "https://b", summary="Same body"))

    assert second.outcome == "duplicate"
    assert second.canonical_id == first.item_id
    assert len(await store.filter_items()) == 1


@pytest.mark.asyncio
async def test_low_score_and_invalid_candidates(store, ingest):
    result = await BatchProcessor().run(
        [
            candidate("Low", "https://low", 0.2),
            candidate("", "https://no-headline"),
            candidate("No url", ""),
            candidate("Good", "https://good", 0.6),
        ],
        ingest,
    )

    assert result.outcomes == {"low_score": 1, "new": 1}
    assert result.error_count == 2
    assert {e.item_id for e in result.errors} == {"https://no-headline", "No url"}
    assert len(await store.filter_items()) == 1


@pytest.mark.asyncio
async def test_insert_failure_releases_hash(store, dedup, clock):
    class FailingInsert(type(store)):
        async def insert_item(self, item):
            raise RuntimeError("db down")

    failing = FailingInsert(clock=clock)
    op = IngestCandidateOperation(failing, type(dedup)(failing))

    with pytest.raises(RuntimeError):
        await op.ingest(candidate("A", "https://a", summary="text"))

    assert failing._hashes == {}


@pytest.mark.asyncio
async def test_run_import_applies_limit_and_counts_low_scores(store, ingest):
    source = StaticSource(
        [candidate(f"Story {i}", f"https://s/{i}", score, summary=f"body {i}")
         for i, score in enumerate([0.9, 0.1, 0.8, 0.7, 0.2])]
    )

    result = await run_import(source, JobParameters(min_score=0.5, limit=2), ingest, BatchProcessor())

    assert result.outcomes == {"new": 2, "low_score": 2}
    assert sorted(i.headline for i in await store.filter_items()) == ["Story 0", "Story 2"]


@pytest.mark.asyncio
async def test_news_import_job_end_to_end(store, dedup, clock):
    source = StaticSource([candidate("Rates", "https://r", 0.9, summary="Rates fell")])
    handler = NewsImportHandler(store, dedup, BatchProcessor(), {"static": source}, default_source="static")
    registry = JobRegistry(store, {"news_import": handler}, clock=clock)
    await registry.upsert("import", JobSettings(schedule="0 8 * * *", parameters={"min_score": 0.5}))

    result = await registry.trigger("import")

    assert result.outcomes == {"new": 1}
    assert (await registry.get("import")).last_run_result == {"success": 1, "errors": 0, "new": 1}


@pytest.mark.asyncio
async def test_news_import_source_failure_is_trigger_error(store, dedup, clock):
    source = StaticSource(error=httpx.ConnectError("unreachable"))
    handler = NewsImportHandler(store, dedup, BatchProcessor(), {"search": source})
    registry = JobRegistry(store, {"news_import": handler}, clock=clock)
    await registry.upsert("import", JobSettings(schedule="0 8 * * *"))

    with pytest.raises(TriggerError):
        await registry.trigger("import")

    assert (await registry.get("import")).last_run is None


@pytest.mark.asyncio
async def test_unknown_source_is_trigger_error(store, dedup, clock):
    handler = NewsImportHandler(store, dedup, BatchProcessor(), {})
    registry = JobRegistry(store, {"news_import": handler}, clock=clock)
    await registry.upsert("import", JobSettings(schedule="0 8 * * *", parameters={"source": "feeds"}))

    with pytest.raises(TriggerError, match="feeds"):
        await registry.trigger("import")


class TestSearchResponse:
    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"articles": [{"title": "A", "url": "https://a"}]}\n```'
        assert parse_search_response(text) == [{"title": "A", "url": "https://a"}]

    def test_object_inside_prose(self):
        text = 'Results: {"results": [{"title": "B"}]} Hope that helps.'
        assert parse_search_response(text) == [{"title": "B"}]

    def test_bare_array(self):
        assert parse_search_response('[{"title": "C"}, "junk"]') == [{"title": "C"}]

    def test_unparseable(self):
        with pytest.raises(ValueError):
            parse_search_response("No news today.")


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content):
    completions = FakeCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


@pytest.mark.asyncio
async def test_search_source_builds_prompt_and_parses(store):
    prompt = await store.save_prompt(
        PromptDefinition(name="Rates", prompt_text="News about [QUERY]", model="sonar-pro")
    )
    reply = json.dumps(
        {"articles": [
            {"title": "Rates dip", "url": "https://a", "relevance_score": 0.8, "date": "2024-06-03"},
            {"title": "No score", "url": "https://b"},
        ]}
    )
    client, completions = fake_client(reply)
    source = SearchPromptSource("key", prompts=store, client=client)

    candidates = await source.fetch_candidates(
        JobParameters(prompt_id=prompt.id, keywords=["mortgage", "refinance"])
    )

    request = completions.requests[0]
    assert request["model"] == "sonar-pro"
    assert request["messages"][1]["content"] == "News about mortgage, refinance"
    assert [c.score for c in candidates] == [0.8, 1.0]
    assert candidates[0].timestamp.year == 2024


@pytest.mark.asyncio
async def test_search_source_model_override_and_keywords():
    client, completions = fake_client("[]")
    source = SearchPromptSource("key", model="sonar", client=client)

    assert await source.fetch_candidates(
        JobParameters(model_override="sonar-reasoning", keywords=["housing"])
    ) == []

    request = completions.requests[0]
    assert request["model"] == "sonar-reasoning"
    assert request["messages"][1]["content"].endswith("KEYWORDS: housing")


@pytest.mark.asyncio
async def test_search_source_inactive_prompt(store):
    prompt = await store.save_prompt(PromptDefinition(name="Old", is_active=False))
    client, _ = fake_client("[]")
    source = SearchPromptSource("key", prompts=store, client=client)

    with pytest.raises(LookupError):
        await source.fetch_candidates(JobParameters(prompt_id=prompt.id))


@pytest.mark.asyncio
async def test_feed_source_parses_entries_and_skips_failed_feeds():
    def handle(request):
        if request.url.host == "good.example":
            return httpx.Response(200, text=RSS)
        return httpx.Response(500)

    source = FeedSource(
        [
            SourceConfig(name="Good", url="https://good.example/feed", weight=0.7),
            SourceConfig(name="Bad", url="https://bad.example/feed"),
            SourceConfig(name="Off", url="https://off.example/feed", enabled=False),
        ],
        transport=httpx.MockTransport(handle),
    )

    candidates = await source.fetch_candidates(JobParameters())

    assert [c.headline for c in candidates] == ["Rates & homes", "Builders"]
    first = candidates[0]
    assert first.url == "https://example.com/rates"
    assert first.source == "Good"
    assert first.score == 0.7
    assert first.external_id == "rates-1"
    assert first.timestamp.day == 3


@pytest.mark.asyncio
async def test_feed_source_keyword_filter():
    source = FeedSource(
        [SourceConfig(name="Good", url="https://good.example/feed")],
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text=RSS)),
    )
    candidates = await source.fetch_candidates(JobParameters(keywords=["builders"]))
    assert [c.headline for c in candidates] == ["Builders"]


@pytest.mark.asyncio
async def test_feed_source_all_failed_raises():
    source = FeedSource(
        [SourceConfig(name="Bad", url="https://bad.example/feed")],
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    with pytest.raises(RuntimeError):
        await source.fetch_candidates(JobParameters())


POST = {
    "id": 42,
    "link": "https://site.example/rates-fall",
    "date_gmt": "2024-06-03T08:00:00",
    "title": {"rendered": "Rates &#8211; falling"},
    "excerpt": {"rendered": "<p>Short</p>"},
    "content": {"rendered": "<p>Full   post body</p>"},
}


def wordpress_transport(requests):
    def handle(request):
        requests.append(request)
        path = request.url.path
        if path == "/wp-json/wp/v2/posts/42":
            return httpx.Response(200, json=POST)
        if path.startswith("/wp-json/wp/v2/posts/"):
            return httpx.Response(404, json={"code": "rest_post_invalid_id"})
        return httpx.Response(200, json=[POST])

    return httpx.MockTransport(handle)


@pytest.mark.asyncio
async def test_wordpress_candidates():
    requests = []
    client = WordPressClient("https://site.example/", transport=wordpress_transport(requests))

    candidates = await client.fetch_candidates(JobParameters(limit=5, keywords=["rates"]))

    assert requests[0].url.params["per_page"] == "5"
    assert requests[0].url.params["search"] == "rates"
    item = candidates[0]
    assert item.headline == "Rates – falling"
    assert item.summary == "Short"
    assert item.content == "<p>Full   post body</p>"
    assert item.external_id == "42"


@pytest.mark.asyncio
async def test_wordpress_post_content_lookup(store):
    client = WordPressClient("https://site.example", transport=wordpress_transport([]))

    by_id = await add_item(store, "x", external_id="42")
    gone = await add_item(store, "x", external_id="7")
    by_link = await add_item(store, "x", headline="Other title", url="https://site.example/rates-fall")
    no_match = await add_item(store, "x", headline="Unrelated", url="https://elsewhere")

    assert await client.fetch_post_content(by_id) == "<p>Full   post body</p>"
    assert await client.fetch_post_content(gone) is None
    assert await client.fetch_post_content(by_link) == "<p>Full   post body</p>"
    assert await client.fetch_post_content(no_match) is None


@pytest.mark.asyncio
async def test_import_document(store, ingest, tmp_path):
    doc = tmp_path / "brief.md"
    doc.write_text("\n# Market brief\n\nHome prices rose for the third month.\n")

    result = await import_document(doc, ingest)

    assert result.outcome == "new"
    item = await store.get_item(result.item_id)
    assert item.headline == "# Market brief"
    assert item.url == doc.resolve().as_uri()
    assert item.source == "document"
    assert "Home prices rose" in item.clean_content

    again = await import_document(doc, ingest)
    assert again.outcome == "duplicate"


@pytest.mark.asyncio
async def test_import_document_rejects_unknown_types(ingest, tmp_path):
    doc = tmp_path / "brief.pdf"
    doc.write_bytes(b"%PDF-1.4")
    with pytest.raises(ValueError):
        await import_document(doc, ingest)
