"""
Mock source for testing and development.

Generates synthetic Stellar ecosystem posts so the indexer can run end to
end without platform credentials. A fixed seed makes the output
reproducible.
"""

import random
from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from typing import Any

from events_indexer.ingestion.base_source import BaseSource
from events_indexer.posts.schemas import IncomingPost, Platform

DEMO_POSTS = [
    (
        "CryptoAnalyst",
        "Stellar Lumens (XLM) is revolutionizing cross-border payments with its "
        "lightning-fast settlement times and minimal fees.",
    ),
    (
        "BlockchainDev",
        "Just read about Stellar blockchain technology - their consensus algorithm is "
        "fascinating. Instead of mining like Bitcoin, they use something called the "
        "Stellar Consensus Protocol (SCP).",
    ),
    (
        "FinTechNews",
        "The Stellar Development Foundation announced new partnerships with major "
        "financial institutions for cross-border remittances using XLM.",
    ),
]

TEMPLATES = [
    "Just deployed my first {contract} on testnet. The developer experience keeps "
    "getting better and the docs are solid.",
    "{partner} is expanding its Stellar integration, which could be huge for "
    "remittances and financial inclusion in emerging markets.",
    "Running my own {infra} node this week. Sync was faster than expected and the "
    "API has been rock solid under load.",
    "Moved my XLM into {wallet} today. Path payments and claimable balances make "
    "the whole experience feel like a modern payments app.",
    "Interesting thread on how anchors bridge fiat and the network. Every {partner} "
    "corridor adds real utility for cross-border payments.",
    "Central banks exploring CBDC pilots keep mentioning distributed ledger designs "
    "similar to the Stellar network. Worth watching closely.",
]

SHORT_TEMPLATES = [
    "XLM to the moon",
    "gm stellar fam",
    "Soroban is cool",
]

FILL = {
    "contract": ["Soroban contract", "soroban smart contracts demo", "stellar smart contracts"],
    "partner": ["MoneyGram", "Circle", "AirTM", "Vibrant", "Cowrie"],
    "infra": ["Stellar Core", "Horizon API", "stellar-core"],
    "wallet": ["LOBSTR", "Freighter", "freighter wallet"],
}

SAMPLE_AUTHORS = [
    ("1001", "stellar_builder", "Stellar Builder", 4200, False),
    ("1002", "xlm_maxi", "XLM Maxi", 15000, True),
    ("1003", "anchor_ops", "Anchor Ops", 820, False),
    ("1004", "soroban_dev", "Soroban Dev", 6100, True),
    ("1005", "remit_watch", "Remittance Watch", 30500, True),
]


class MockSource(BaseSource):
    """
    Synthetic source for one platform.

    Roughly one post in ten is too short to index, so runs also exercise
    the quality filter.
    """

    def __init__(
        self,
        platform: Platform = Platform.TWITTER,
        include_short: bool = True,
        include_demo: bool = True,
        seed: int | None = None,
    ):
        super().__init__()
        self._platform = platform
        self._include_short = include_short
        self._include_demo = include_demo
        self._random = random.Random(seed)
        self._counter = 0

    @property
    def platform(self) -> Platform:
        return self._platform

    async def _fetch_raw(self, limit: int) -> AsyncIterator[dict[str, Any]]:
        now = datetime.now(timezone.utc)

        if self._include_demo:
            for index, (username, content) in enumerate(DEMO_POSTS[:limit]):
                yield self._raw(
                    content, username, username, now,
                    post_id=f"demo_{self._platform.value}_{index}",
                )

        for _ in range(max(0, limit - (len(DEMO_POSTS) if self._include_demo else 0))):
            native_id, username, name, _, _ = self._random.choice(SAMPLE_AUTHORS)
            if self._include_short and self._random.random() < 0.1:
                content = self._random.choice(SHORT_TEMPLATES)
            else:
                template = self._random.choice(TEMPLATES)
                content = template.format(
                    **{key: self._random.choice(values) for key, values in FILL.items()}
                )
            created_at = now - timedelta(
                hours=self._random.randint(0, 23),
                minutes=self._random.randint(0, 59),
            )
            yield self._raw(content, username, name, created_at, native_id)

    def _raw(
        self,
        content: str,
        username: str,
        name: str,
        created_at: datetime,
        native_id: str | None = None,
        post_id: str | None = None,
    ) -> dict[str, Any]:
        self._counter += 1
        if post_id is None:
            post_id = f"mock_{self._platform.value}_{self._counter}_{self._random.getrandbits(32):08x}"
        followers = next(
            (a[3] for a in SAMPLE_AUTHORS if a[1] == username),
            self._random.randint(100, 5000),
        )
        return {
            "id": post_id,
            "text": content,
            "author": {
                "id": native_id or f"demo_{username.lower()}",
                "username": username,
                "name": name,
                "followers": followers,
                "verified": followers > 10000,
            },
            "created_at": created_at.isoformat(),
        }

    def _transform(self, raw: dict[str, Any]) -> IncomingPost | None:
        author = raw["author"]
        return IncomingPost(
            platform=self._platform,
            platform_id=raw["id"],
            content=raw["text"],
            author_id=author["id"],
            author_username=author["username"],
            author_name=author["name"],
            author_followers=author["followers"],
            author_verified=author["verified"],
            created_at=datetime.fromisoformat(raw["created_at"]),
            url=f"https://example.com/{self._platform.value}/{raw['id']}",
            raw_data=raw,
        )


def create_mock_sources(seed: int | None = None) -> dict[Platform, BaseSource]:
    """One mock source per supported platform."""
    return {
        platform: MockSource(platform=platform, seed=seed)
        for platform in Platform
    }
