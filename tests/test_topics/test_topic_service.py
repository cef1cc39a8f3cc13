"""Tests for TopicMatchingService."""

from datetime import datetime, timezone

import pytest

from events_indexer.topics.config import TopicsConfig
from events_indexer.topics.service import TopicConflictError, TopicMatchingService


def _row(name: str, aliases: list[str] | None = None, **kwargs) -> dict:
    """Build a topics table row."""
    return {
        "name": name,
        "aliases": aliases or [],
        "type": kwargs.get("type", "dictionary_match"),
        "category": kwargs.get("category"),
        "description": kwargs.get("description"),
        "frequency": kwargs.get("frequency", 0),
        "is_active": True,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }


ROWS = [
    _row("stellar", ["xlm", "lumens"], category="cryptocurrency"),
    _row("soroban", ["soroban smart contracts"], category="technology"),
    _row("jed mccaleb", ["jed"], category="person"),
]


@pytest.fixture
def service(mock_database):
    return TopicMatchingService(mock_database, TopicsConfig(seed_on_init=True))


class TestRefreshDictionary:
    """Tests for loading the registry into the matcher."""

    @pytest.mark.asyncio
    async def test_builds_from_active_topics(self, service, mock_database):
        mock_database.fetch.return_value = ROWS

        terms = await service.initialize()

        assert terms == 7
        assert service.automaton.topic_count == 3
        assert service.match_topics("Soroban contracts and XLM") == {"soroban", "stellar"}
        mock_database.executemany.assert_not_called()

    @pytest.mark.asyncio
    async def test_bootstraps_defaults_when_empty(self, service, mock_database):
        mock_database.fetch.side_effect = [[], ROWS]

        await service.initialize()

        mock_database.executemany.assert_called_once()
        args = mock_database.executemany.call_args[0][1]
        assert len(args) == 29
        assert service.automaton.term_count == 7

    @pytest.mark.asyncio
    async def test_no_bootstrap_when_disabled(self, mock_database):
        service = TopicMatchingService(mock_database, TopicsConfig(seed_on_init=False))
        mock_database.fetch.return_value = []

        terms = await service.initialize()

        assert terms == 0
        mock_database.executemany.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_keeps_current_automaton(self, service, mock_database):
        mock_database.fetch.return_value = ROWS
        await service.initialize()
        before = service.automaton

        mock_database.fetch.side_effect = ConnectionError("db down")
        terms = await service.refresh_dictionary()

        assert service.automaton is before
        assert terms == 7
        assert service.match_topics("xlm") == {"stellar"}

    @pytest.mark.asyncio
    async def test_failure_on_first_load_leaves_empty_matcher(self, service, mock_database):
        mock_database.fetch.side_effect = ConnectionError("db down")

        terms = await service.initialize()

        assert terms == 0
        assert service.match_topics("stellar xlm") == set()


class TestResetAndReload:
    """Tests for replacing the registry with defaults."""

    @pytest.mark.asyncio
    async def test_replaces_registry(self, service, mock_database, mock_conn):
        mock_database.fetch.return_value = ROWS

        loaded = await service.reset_and_reload()

        assert loaded == 29
        mock_conn.execute.assert_called_once_with("DELETE FROM topics")
        mock_conn.executemany.assert_called_once()
        assert service.automaton.term_count == 7

    @pytest.mark.asyncio
    async def test_raises_on_storage_failure(self, service, mock_database):
        mock_database.transaction.side_effect = ConnectionError("db down")

        with pytest.raises(ConnectionError):
            await service.reset_and_reload()


class TestAddTopic:
    """Tests for registering topics."""

    @pytest.mark.asyncio
    async def test_adds_and_rebuilds(self, service, mock_database):
        mock_database.fetch.return_value = ROWS
        await service.initialize()

        mock_database.fetchrow.side_effect = [None, {"name": "freighter"}]
        mock_database.fetch.return_value = ROWS + [_row("freighter", ["freighter wallet"])]

        topic = await service.add_topic("Freighter", ["freighter wallet", " "], category="wallet")

        assert topic.name == "freighter"
        assert topic.aliases == ["freighter wallet"]
        assert service.match_topics("Install the Freighter Wallet") == {"freighter"}

    @pytest.mark.asyncio
    async def test_existing_name_conflicts(self, service, mock_database):
        mock_database.fetch.return_value = ROWS
        await service.initialize()
        mock_database.fetchrow.return_value = ROWS[0]

        with pytest.raises(TopicConflictError, match="already exists"):
            await service.add_topic("Stellar")

    @pytest.mark.asyncio
    async def test_alias_owned_by_other_topic_conflicts(self, service, mock_database):
        mock_database.fetch.return_value = ROWS
        await service.initialize()
        mock_database.fetchrow.return_value = None

        with pytest.raises(TopicConflictError, match="already belongs to topic 'stellar'"):
            await service.add_topic("lumen wallet", ["XLM"])

        # Nothing was written
        assert mock_database.fetchrow.call_count == 1

    @pytest.mark.asyncio
    async def test_insert_race_conflicts(self, service, mock_database):
        mock_database.fetch.return_value = ROWS
        await service.initialize()
        mock_database.fetchrow.side_effect = [None, None]

        with pytest.raises(TopicConflictError):
            await service.add_topic("lobstr")

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, service):
        with pytest.raises(ValueError):
            await service.add_topic("   ")


class TestMatching:
    """Tests for matching helpers."""

    @pytest.mark.asyncio
    async def test_match_probe(self, service, mock_database):
        mock_database.fetch.return_value = ROWS
        await service.initialize()

        text = "Soroban brings smart contracts to Stellar. " * 4
        result = service.match_probe("Stellar", text)

        assert result["topic"] == "Stellar"
        assert result["is_match"] is True
        assert result["all_matches"] == ["soroban", "stellar"]
        assert result["surfaces"] == ["soroban", "stellar"]
        assert result["text_snippet"] == text[:100] + "..."

    @pytest.mark.asyncio
    async def test_match_probe_no_match(self, service, mock_database):
        mock_database.fetch.return_value = ROWS
        await service.initialize()

        result = service.match_probe("soroban", "short text")

        assert result["is_match"] is False
        assert result["all_matches"] == []
        assert result["text_snippet"] == "short text"

    @pytest.mark.asyncio
    async def test_match_reports_firing_alias(self, service, mock_database):
        mock_database.fetch.return_value = ROWS
        await service.initialize()

        result = service.match_probe("Jed McCaleb", "The Jedi council met")

        assert result["is_match"] is True
        assert result["surfaces"] == ["jed"]

    def test_match_min_length_from_config(self, mock_database):
        service = TopicMatchingService(mock_database, TopicsConfig(match_min_length=10))
        assert service.match_min_length == 10


class TestFrequencies:
    """Tests for frequency updates."""

    @pytest.mark.asyncio
    async def test_distinct_normalized_names(self, service, mock_database):
        mock_database.execute.return_value = "UPDATE 2"

        updated = await service.update_topic_frequencies(["Stellar", "stellar ", "soroban", " "])

        assert updated == 2
        names, by = mock_database.execute.call_args[0][1:]
        assert names == ["stellar", "soroban"]
        assert by == 1

    @pytest.mark.asyncio
    async def test_uses_transaction_connection(self, service, mock_database, mock_conn):
        mock_conn.execute.return_value = "UPDATE 1"

        await service.update_topic_frequencies(["stellar"], conn=mock_conn)

        mock_conn.execute.assert_called_once()
        mock_database.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_topics_skip_query(self, service, mock_database):
        assert await service.update_topic_frequencies([]) == 0
        mock_database.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_top_topics_default_limit(self, service, mock_database):
        mock_database.fetch.return_value = [ROWS[0]]

        topics = await service.get_top_topics()

        assert [t.name for t in topics] == ["stellar"]
        assert mock_database.fetch.call_args[0][1] == 20


class TestStats:
    def test_stats_reports_collisions(self, service):
        service._install([])
        assert service.stats() == {"topics": 0, "terms": 0, "collisions": []}
