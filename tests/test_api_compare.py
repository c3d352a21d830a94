"""Tests for ad-hoc comparison API endpoints."""

from httpx import AsyncClient


async def import_ids(
    client: AsyncClient, user_id: str, entries: list[tuple[str, str]]
) -> list[str]:
    response = await client.post(
        f"/collection/{user_id}/import",
        json={"entries": [{"external_key": key, "tier": tier} for key, tier in entries]},
    )
    return response.json()["imported"]


class TestRequestPair:
    async def test_empty_collection_has_no_pair(self, client: AsyncClient) -> None:
        response = await client.get("/collection/u1/compare")

        assert response.status_code == 200
        assert response.json() == {"user_id": "u1", "pair": None}

    async def test_pair_within_tier(self, client: AsyncClient) -> None:
        _, _, c, d = await import_ids(
            client, "u1", [("a", "Good"), ("b", "Good"), ("c", "Medium"), ("d", "Medium")]
        )

        response = await client.get("/collection/u1/compare", params={"tier": "Medium"})

        pair = response.json()["pair"]
        assert [item["id"] for item in pair] == [c, d]
        assert pair[0]["score"] == 6.9

    async def test_pair_never_crosses_tiers(self, client: AsyncClient) -> None:
        await import_ids(client, "u1", [("a", "Good"), ("b", "Medium"), ("c", "Bad")])

        response = await client.get("/collection/u1/compare")

        assert response.json()["pair"] is None


class TestRecordOutcome:
    async def test_upset_moves_winner_up(self, client: AsyncClient) -> None:
        a, b = await import_ids(client, "u1", [("a", "Good"), ("b", "Good")])

        response = await client.post(
            "/collection/u1/compare", json={"winner_id": b, "loser_id": a}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["winner"]["rank"] == 1
        assert data["winner"]["score"] == 10.0
        assert data["loser"]["rank"] == 2
        assert data["winner"]["comparison_count"] == 1

    async def test_expected_result_keeps_order(self, client: AsyncClient) -> None:
        a, b = await import_ids(client, "u1", [("a", "Good"), ("b", "Good")])

        response = await client.post(
            "/collection/u1/compare", json={"winner_id": a, "loser_id": b}
        )

        assert response.json()["winner"]["rank"] == 1

    async def test_cross_tier_refused(self, client: AsyncClient) -> None:
        a, b = await import_ids(client, "u1", [("a", "Good"), ("b", "Medium")])

        response = await client.post(
            "/collection/u1/compare", json={"winner_id": b, "loser_id": a}
        )

        assert response.status_code == 409
        items = (await client.get("/collection/u1")).json()["items"]
        assert [item["comparison_count"] for item in items] == [0, 0]

    async def test_unknown_item(self, client: AsyncClient) -> None:
        (a,) = await import_ids(client, "u1", [("a", "Good")])

        response = await client.post(
            "/collection/u1/compare", json={"winner_id": a, "loser_id": "ghost"}
        )

        assert response.status_code == 404

    async def test_settles_after_threshold(self, client: AsyncClient) -> None:
        """Once both items reach the threshold, the pair is no longer offered."""
        a, b = await import_ids(client, "u1", [("a", "Bad"), ("b", "Bad")])

        for _ in range(8):
            await client.post("/collection/u1/compare", json={"winner_id": a, "loser_id": b})

        response = await client.get("/collection/u1/compare")
        assert response.json()["pair"] is None

    async def test_upset_carries_earlier_winner(self, client: AsyncClient) -> None:
        """c lost to b, then beat a: b stays above c."""
        a, b, c = await import_ids(client, "u1", [("a", "Good"), ("b", "Good"), ("c", "Good")])
        await client.post("/collection/u1/compare", json={"winner_id": b, "loser_id": c})

        response = await client.post(
            "/collection/u1/compare", json={"winner_id": c, "loser_id": a}
        )

        assert response.status_code == 200
        items = (await client.get("/collection/u1")).json()["items"]
        assert [item["id"] for item in items] == [b, c, a]
