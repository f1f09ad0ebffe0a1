"""Table operations: load, validate, draw, mutate and save under a per-game lock."""

import logging

from api.card_source import CardSource, get_card_source
from api.session import SessionStore, get_session_store
from config import config
from core.exceptions import AdapterFailure, NotFound
from core.game.engine import BlackjackTable
from core.game.events import EventEmitter, GameEvent
from core.game.models import GameSession
from core.game.projection import project_session

logger = logging.getLogger(__name__)


def _log_event(event: GameEvent) -> None:
    logger.debug("%s", event)


class GameService:
    """
    The six caller-facing table operations.

    Every mutating operation holds the store's lock for the game from load
    to save, so concurrent actions on one game apply one after another.
    Nothing is saved if any step raises. Every result is projected.
    """

    def __init__(self, store: SessionStore, cards: CardSource) -> None:
        self._store = store
        self._cards = cards

    def _table(self, session: GameSession) -> BlackjackTable:
        events = EventEmitter()
        events.subscribe(_log_event)
        return BlackjackTable(session, events)

    async def _load(self, session_id: int) -> GameSession:
        session = await self._store.load(session_id)
        if session is None:
            raise NotFound("Game not found")
        return session

    async def create(self, name: str, players: list[str]) -> int:
        """
        Open a new table with a fresh shoe.

        Returns:
            The new game id
        """
        # Validate before allocating a shoe or an id
        GameSession.new(0, name, "", players, dealer_name=config.game.dealer_name)

        shoe_id = await self._cards.new_shoe(config.game.num_decks)
        session_id = await self._store.next_id()
        session = GameSession.new(
            session_id, name, shoe_id, players, dealer_name=config.game.dealer_name
        )
        await self._store.save(session)
        logger.info("Created game %d '%s' with %d players", session_id, name, len(players))
        return session_id

    async def get_by_id(self, session_id: int) -> GameSession:
        """Return the projected view of the last saved snapshot."""
        return project_session(await self._load(session_id))

    async def deal_round(self, session_id: int, players: list[str] | None = None) -> GameSession:
        """Deal the opening two cards to every seat."""
        async with self._store.lock(str(session_id)) as guard:
            session = await self._load(session_id)
            table = self._table(session)
            table.check_can_deal(players)

            cards = await self._cards.draw(session.shoe_id, table.cards_needed_to_deal)
            try:
                table.deal_round(cards, players)
            except ValueError as exc:
                raise AdapterFailure(str(exc)) from exc

            await guard.confirm()
            await self._store.save(session)
        logger.info("Dealt game %d", session_id)
        return project_session(session)

    async def hit(self, session_id: int, player_name: str) -> GameSession:
        """Give one player one more card."""
        async with self._store.lock(str(session_id)) as guard:
            session = await self._load(session_id)
            table = self._table(session)
            table.check_can_hit(player_name)

            cards = await self._cards.draw(session.shoe_id, 1)
            if len(cards) != 1:
                raise AdapterFailure(
                    f"Requested 1 card from shoe {session.shoe_id}, got {len(cards)}"
                )
            player = table.hit(player_name, cards[0])

            await guard.confirm()
            await self._store.save(session)
        logger.info("Game %d: %s hits, total %d", session_id, player_name, player.total)
        return project_session(session)

    async def stand(self, session_id: int, player_name: str) -> GameSession:
        """Mark a player as standing."""
        async with self._store.lock(str(session_id)) as guard:
            session = await self._load(session_id)
            self._table(session).stand(player_name)
            await guard.confirm()
            await self._store.save(session)
        logger.info("Game %d: %s stands", session_id, player_name)
        return project_session(session)

    async def reveal_dealer(self, session_id: int) -> GameSession:
        """Turn the dealer's hole card face up once every player is done."""
        async with self._store.lock(str(session_id)) as guard:
            session = await self._load(session_id)
            if self._table(session).reveal_dealer():
                await guard.confirm()
                await self._store.save(session)
                logger.info("Game %d: dealer revealed", session_id)
        return project_session(session)


async def get_game_service() -> GameService:
    """FastAPI dependency returning a service on the configured backends."""
    return GameService(await get_session_store(), get_card_source())
