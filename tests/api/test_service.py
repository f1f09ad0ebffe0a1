"""Tests for the table operations over store and card source."""

import asyncio
import json
from random import Random
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import LockNotOwnedError

from api.service import GameService
from api.session import InMemorySessionStore, RedisSessionStore
from conftest import ScriptedCardSource, SlowCardSource
from core.exceptions import AdapterFailure, InvalidState, NotFound, RoundNotComplete
from core.game.projection import HIDDEN
from core.game.state import GamePhase
from core.hand import hand_total

OPENING = ["KS", "7H", "9C", "8D", "0H", "6S"]


@pytest.fixture
def scripted():
    """Opening deal, then a run of hit cards."""
    return ScriptedCardSource(OPENING + ["2C", "KD", "QC", "5H"])


@pytest.fixture
def scripted_service(store, scripted):
    return GameService(store, scripted)


class TestCreate:
    """Tests for opening a table."""

    @pytest.mark.asyncio
    async def test_create_persists_session(self, service, store):
        game_id = await service.create("T1", ["Alice", "Bob"])

        saved = await store.load(game_id)
        assert saved.name == "T1"
        assert saved.dealt is False
        assert [p.name for p in saved.players] == ["Dealer", "Alice", "Bob"]
        assert saved.shoe_id

    @pytest.mark.asyncio
    async def test_ids_increase(self, service):
        first = await service.create("T1", ["Alice"])
        second = await service.create("T2", ["Bob"])
        assert second > first

    @pytest.mark.asyncio
    async def test_six_deck_shoe(self, service, store, local_source):
        game_id = await service.create("T1", ["Alice"])
        saved = await store.load(game_id)
        assert local_source.remaining(saved.shoe_id) == 312

    @pytest.mark.asyncio
    async def test_invalid_players_allocate_nothing(self, store, scripted):
        service = GameService(store, scripted)
        with pytest.raises(ValueError):
            await service.create("T1", ["Alice", "Alice"])
        assert scripted.shoes_created == 0
        assert await store.next_id() == 1

    @pytest.mark.asyncio
    async def test_adapter_failure_saves_nothing(self, store):
        class BrokenSource(ScriptedCardSource):
            async def new_shoe(self, deck_count):
                raise AdapterFailure("Deck API request failed")

        service = GameService(store, BrokenSource([]))
        with pytest.raises(AdapterFailure):
            await service.create("T1", ["Alice"])
        assert await store.load(1) is None


class TestGetById:
    """Tests for reading a table."""

    @pytest.mark.asyncio
    async def test_missing_game(self, service):
        with pytest.raises(NotFound, match="Game not found"):
            await service.get_by_id(42)

    @pytest.mark.asyncio
    async def test_view_is_masked(self, scripted_service):
        game_id = await scripted_service.create("T1", ["Alice", "Bob"])
        await scripted_service.deal_round(game_id)

        view = await scripted_service.get_by_id(game_id)
        assert view.players[0].hand[0].code == HIDDEN
        assert view.players[0].hand[1].code == "7H"


class TestDealRound:
    """Tests for the opening deal through the service."""

    @pytest.mark.asyncio
    async def test_single_batch_draw(self, scripted_service, scripted):
        game_id = await scripted_service.create("T1", ["Alice", "Bob"])
        await scripted_service.deal_round(game_id, ["Alice", "Bob"])
        assert scripted.draw_calls == [6]

    @pytest.mark.asyncio
    async def test_slicing_persisted(self, scripted_service, store):
        game_id = await scripted_service.create("T1", ["Alice", "Bob"])
        await scripted_service.deal_round(game_id)

        saved = await store.load(game_id)
        hands = [[c.code for c in p.hand] for p in saved.players]
        assert hands == [["KS", "7H"], ["9C", "8D"], ["0H", "6S"]]
        assert saved.dealt is True
        assert saved.dealer.hand[0].visible is False

    @pytest.mark.asyncio
    async def test_hidden_card_masked_in_result(self, scripted_service):
        game_id = await scripted_service.create("T1", ["Alice", "Bob"])
        view = await scripted_service.deal_round(game_id)
        dumped = str(view.players[0].hand[0])
        assert view.players[0].hand[0].rank == HIDDEN
        assert "KS" not in dumped

    @pytest.mark.asyncio
    async def test_deal_twice(self, scripted_service, scripted):
        game_id = await scripted_service.create("T1", ["Alice", "Bob"])
        await scripted_service.deal_round(game_id)
        with pytest.raises(InvalidState, match="already dealt"):
            await scripted_service.deal_round(game_id)
        assert scripted.draw_calls == [6]

    @pytest.mark.asyncio
    async def test_missing_game(self, service):
        with pytest.raises(NotFound):
            await service.deal_round(9)

    @pytest.mark.asyncio
    async def test_short_shoe_commits_nothing(self, store):
        source = ScriptedCardSource(OPENING[:4])
        service = GameService(store, source)
        game_id = await service.create("T1", ["Alice", "Bob"])

        with pytest.raises(AdapterFailure):
            await service.deal_round(game_id)

        saved = await store.load(game_id)
        assert saved.dealt is False
        assert all(p.hand == [] for p in saved.players)


class TestPlayerActions:
    """Tests for hit and stand through the service."""

    @pytest.mark.asyncio
    async def test_hit_persists(self, scripted_service, store):
        game_id = await scripted_service.create("T1", ["Alice", "Bob"])
        await scripted_service.deal_round(game_id)

        view = await scripted_service.hit(game_id, "Alice")

        alice = view.players[1]
        assert [c.code for c in alice.hand] == ["9C", "8D", "2C"]
        assert alice.total == 19
        saved = await store.load(game_id)
        assert saved.players[1].total == hand_total(saved.players[1].hand) == 19

    @pytest.mark.asyncio
    async def test_hit_before_deal(self, scripted_service, scripted):
        game_id = await scripted_service.create("T1", ["Alice"])
        with pytest.raises(InvalidState, match="not dealt"):
            await scripted_service.hit(game_id, "Alice")
        assert scripted.draw_calls == []

    @pytest.mark.asyncio
    async def test_hit_unknown_player_draws_nothing(self, scripted_service, scripted):
        game_id = await scripted_service.create("T1", ["Alice", "Bob"])
        await scripted_service.deal_round(game_id)
        with pytest.raises(NotFound):
            await scripted_service.hit(game_id, "Mallory")
        assert scripted.draw_calls == [6]

    @pytest.mark.asyncio
    async def test_hit_with_wrong_card_count_is_adapter_failure(self, store):
        """A source handing back extra cards is a provider fault, not a crash."""

        class GenerousSource(ScriptedCardSource):
            async def draw(self, shoe_id, count):
                drawn = await super().draw(shoe_id, count)
                return drawn + drawn if count == 1 else drawn

        service = GameService(store, GenerousSource(OPENING + ["2C"]))
        game_id = await service.create("T1", ["Alice", "Bob"])
        await service.deal_round(game_id)

        with pytest.raises(AdapterFailure, match="got 2"):
            await service.hit(game_id, "Alice")
        assert len((await store.load(game_id)).players[1].hand) == 2

    @pytest.mark.asyncio
    async def test_hit_with_empty_draw_is_adapter_failure(self, store):
        class EmptySource(ScriptedCardSource):
            async def draw(self, shoe_id, count):
                return await super().draw(shoe_id, count) if count > 1 else []

        service = GameService(store, EmptySource(OPENING))
        game_id = await service.create("T1", ["Alice", "Bob"])
        await service.deal_round(game_id)

        with pytest.raises(AdapterFailure, match="got 0"):
            await service.hit(game_id, "Alice")

    @pytest.mark.asyncio
    async def test_stand_persists(self, scripted_service, store):
        game_id = await scripted_service.create("T1", ["Alice", "Bob"])
        await scripted_service.deal_round(game_id)

        view = await scripted_service.stand(game_id, "Bob")

        assert view.players[2].standing is True
        assert (await store.load(game_id)).players[2].standing is True

    @pytest.mark.asyncio
    async def test_stand_unknown_player(self, scripted_service):
        game_id = await scripted_service.create("T1", ["Alice"])
        await scripted_service.deal_round(game_id)
        with pytest.raises(NotFound):
            await scripted_service.stand(game_id, "")


class TestRevealDealer:
    """Tests for the reveal through the service."""

    @pytest.mark.asyncio
    async def test_blocked_while_player_active(self, scripted_service, store):
        game_id = await scripted_service.create("T1", ["Alice", "Bob"])
        await scripted_service.deal_round(game_id)
        await scripted_service.stand(game_id, "Alice")

        with pytest.raises(RoundNotComplete):
            await scripted_service.reveal_dealer(game_id)
        assert (await store.load(game_id)).dealer.hand[0].visible is False

    @pytest.mark.asyncio
    async def test_reveal_repeat_is_noop(self, scripted_service, store):
        game_id = await scripted_service.create("T1", ["Alice"])
        await scripted_service.deal_round(game_id, ["Alice"])
        await scripted_service.stand(game_id, "Alice")

        first = await scripted_service.reveal_dealer(game_id)
        second = await scripted_service.reveal_dealer(game_id)

        assert first == second
        assert second.players[0].hand[0].code == "KS"
        assert second.phase == GamePhase.REVEALED


class TestEndToEnd:
    """A full round on a shuffled shoe."""

    @pytest.mark.asyncio
    async def test_round(self, service, store):
        game_id = await service.create("T1", ["Alice", "Bob"])
        view = await service.deal_round(game_id, ["Alice", "Bob"])

        dealer, alice, bob = view.players
        assert sum(len(p.hand) for p in view.players) == 6
        assert [c.visible for c in dealer.hand] == [False, True]
        assert dealer.hand[0].code == HIDDEN
        assert all(c.visible for c in alice.hand + bob.hand)

        hole = (await store.load(game_id)).dealer.hand[0]

        await service.stand(game_id, "Alice")
        while True:
            view = await service.hit(game_id, "Bob")
            assert view.players[0].hand[0].code == HIDDEN
            if view.players[2].total > 21:
                break

        view = await service.reveal_dealer(game_id)
        assert view.players[0].hand[0].visible is True
        assert view.players[0].hand[0].code == hole.code

        again = await service.get_by_id(game_id)
        assert again.players[0].hand[0].code == hole.code


class TestConcurrency:
    """Mutations on one game must not lose updates."""

    @pytest.mark.asyncio
    async def test_concurrent_hits_all_land(self):
        names = [f"P{i}" for i in range(6)]
        store = InMemorySessionStore()
        service = GameService(store, SlowCardSource(rng=Random(3)))
        game_id = await service.create("Race", names)
        await service.deal_round(game_id)

        await asyncio.gather(*(service.hit(game_id, name) for name in names))

        saved = await store.load(game_id)
        for player in saved.seated_players:
            assert len(player.hand) == 3
            assert player.total == hand_total(player.hand)

    @pytest.mark.asyncio
    async def test_concurrent_deals_only_one_wins(self):
        store = InMemorySessionStore()
        service = GameService(store, SlowCardSource(rng=Random(3)))
        game_id = await service.create("Race", ["Alice", "Bob"])

        results = await asyncio.gather(
            service.deal_round(game_id),
            service.deal_round(game_id),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidState)
        saved = await store.load(game_id)
        assert all(len(p.hand) == 2 for p in saved.players)

    @pytest.mark.asyncio
    async def test_hit_and_stand_race(self):
        store = InMemorySessionStore()
        service = GameService(store, SlowCardSource(rng=Random(5)))
        game_id = await service.create("Race", ["Alice", "Bob"])
        await service.deal_round(game_id)

        await asyncio.gather(service.hit(game_id, "Alice"), service.stand(game_id, "Bob"))

        saved = await store.load(game_id)
        assert len(saved.players[1].hand) == 3
        assert saved.players[2].standing is True

    @pytest.mark.asyncio
    async def test_lock_lost_during_draw_commits_nothing(self, dealt_table):
        """A writer whose Redis lock expired mid-draw must not overwrite the game."""
        client = MagicMock()
        client.get = AsyncMock(return_value=json.dumps(dealt_table.session.to_dict()).encode())
        client.set = AsyncMock()
        redis_lock = MagicMock()
        redis_lock.acquire = AsyncMock(return_value=True)
        redis_lock.reacquire = AsyncMock(side_effect=LockNotOwnedError("expired"))
        redis_lock.release = AsyncMock(side_effect=LockNotOwnedError("expired"))
        client.lock.return_value = redis_lock

        source = ScriptedCardSource(["2C"])
        service = GameService(RedisSessionStore(client), source)

        with pytest.raises(InvalidState, match="busy"):
            await service.hit(dealt_table.session.id, "Alice")

        assert source.draw_calls == [1]
        client.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stand_with_lost_lock_commits_nothing(self, dealt_table):
        client = MagicMock()
        client.get = AsyncMock(return_value=json.dumps(dealt_table.session.to_dict()).encode())
        client.set = AsyncMock()
        redis_lock = MagicMock()
        redis_lock.acquire = AsyncMock(return_value=True)
        redis_lock.reacquire = AsyncMock(side_effect=LockNotOwnedError("expired"))
        redis_lock.release = AsyncMock()
        client.lock.return_value = redis_lock
        service = GameService(RedisSessionStore(client), ScriptedCardSource([]))

        with pytest.raises(InvalidState, match="busy"):
            await service.stand(dealt_table.session.id, "Bob")

        client.set.assert_not_awaited()
        redis_lock.reacquire.assert_awaited_once()
