"""Blackjack table engine with state machine."""

from transitions import Machine

from core.cards import Card
from core.exceptions import InvalidState, NotFound, RoundNotComplete
from core.game.events import EventEmitter, EventType
from core.game.models import GameSession, Player
from core.game.state import PHASE_TRIGGERS, VALID_TRANSITIONS, GamePhase


class BlackjackTable:
    """
    Rules for one table session, driven by a state machine.

    The engine never talks to the card source or the store. Callers
    validate with the `check_*` methods, fetch cards, then apply them with
    the mutating methods, which validate again before touching state.
    Every mutation happens on `self.session` in place.
    """

    # State machine states
    STATES = [p.name.lower() for p in GamePhase]

    # State machine transitions, one per edge of the phase table
    TRANSITIONS = [
        {"trigger": PHASE_TRIGGERS[dest], "source": source.name.lower(), "dest": dest.name.lower()}
        for source, dests in VALID_TRANSITIONS.items()
        for dest in dests
    ]

    def __init__(
        self,
        session: GameSession,
        events: EventEmitter | None = None,
    ) -> None:
        """
        Wrap a session loaded from the store.

        Args:
            session: Session to operate on; mutated in place
            events: Emitter to publish game events on
        """
        self.session = session
        self.events = events or EventEmitter()

        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial=session.phase.name.lower(),
            auto_transitions=False,
            model_attribute="_machine_state",
        )

    @property
    def phase(self) -> GamePhase:
        """Get current phase as enum."""
        return GamePhase[self._machine_state.upper()]  # type: ignore

    @property
    def cards_needed_to_deal(self) -> int:
        """Two cards for every seat, dealer included."""
        return 2 * len(self.session.players)

    @property
    def is_round_complete(self) -> bool:
        """Check if every non-dealer player is standing or busted."""
        return all(p.is_done for p in self.session.seated_players)

    def _require_in_play(self) -> None:
        if self.phase == GamePhase.CREATED:
            raise InvalidState("Game not dealt")
        if self.phase == GamePhase.REVEALED:
            raise InvalidState("Round is over")

    def _require_acting_player(self, name: str) -> Player:
        player = self.session.find_player(name)
        if player is None:
            raise NotFound(f"Player not found: {name}")
        if player.is_dealer:
            raise InvalidState("The dealer does not take actions")
        return player

    def check_can_deal(self, players: list[str] | None = None) -> None:
        """
        Validate a deal request.

        Args:
            players: Roster the caller expects, in seat order (optional)

        Raises:
            InvalidState: If already dealt or the roster does not match
        """
        if self.phase != GamePhase.CREATED:
            raise InvalidState("Game already dealt")
        if players is not None:
            roster = [p.name for p in self.session.seated_players]
            if list(players) != roster:
                raise InvalidState(
                    f"Player list {players} does not match the table {roster}"
                )

    def deal_round(self, cards: list[Card], players: list[str] | None = None) -> None:
        """
        Deal two cards to every seat from one ordered batch.

        Seat i takes the cards at offsets 2i and 2i+1. The dealer's first
        card is dealt face down.
        """
        self.check_can_deal(players)
        if len(cards) != self.cards_needed_to_deal:
            raise ValueError(
                f"Expected {self.cards_needed_to_deal} cards, got {len(cards)}"
            )

        for i, player in enumerate(self.session.players):
            first, second = cards[2 * i : 2 * i + 2]
            player.add_card(first.with_visibility(not player.is_dealer))
            player.add_card(second.with_visibility(True))
            for card in player.hand:
                self.events.emit_new(
                    EventType.CARD_DEALT,
                    card=str(card),
                    player=player.name,
                )

        self.session.dealt = True
        self.deal()
        self.events.emit_new(
            EventType.ROUND_STARTED,
            game_id=self.session.id,
            players=len(self.session.players),
        )

    def check_can_hit(self, name: str) -> Player:
        """
        Validate a hit and return the player who would take the card.

        Raises:
            InvalidState: Outside the dealt phase, or the player is the
                dealer, standing or busted
            NotFound: If no player has this name
        """
        self._require_in_play()
        player = self._require_acting_player(name)
        if player.standing:
            raise InvalidState(f"{name} is already standing")
        if player.is_busted:
            raise InvalidState(f"{name} has busted")
        return player

    def hit(self, name: str, card: Card) -> Player:
        """Give a player one face-up card."""
        player = self.check_can_hit(name)
        player.add_card(card.with_visibility(True))
        self.events.emit_new(
            EventType.PLAYER_HIT,
            player=name,
            card=card.code,
            hand_value=player.total,
        )

        if player.is_busted:
            self.events.emit_new(EventType.PLAYER_BUSTS, player=name, hand_value=player.total)

        return player

    def stand(self, name: str) -> Player:
        """Mark a player as standing. Standing twice is harmless."""
        self._require_in_play()
        player = self._require_acting_player(name)
        player.standing = True
        self.events.emit_new(EventType.PLAYER_STAND, player=name, hand_value=player.total)
        return player

    def check_can_reveal(self) -> bool:
        """
        Validate a reveal.

        Returns:
            False if the hole card is already showing, True otherwise

        Raises:
            InvalidState: If the round has not been dealt
            RoundNotComplete: If a player can still act
        """
        if self.phase == GamePhase.CREATED:
            raise InvalidState("Game not dealt")
        if self.phase == GamePhase.REVEALED:
            return False

        pending = [p.name for p in self.session.seated_players if not p.is_done]
        if pending:
            raise RoundNotComplete(
                "All players must stand or bust before revealing dealer hand: "
                + ", ".join(pending)
            )
        return True

    def reveal_dealer(self) -> bool:
        """
        Turn the dealer's hole card face up.

        Returns:
            True if the card was turned, False if it already was
        """
        if not self.check_can_reveal():
            return False

        dealer = self.session.dealer
        dealer.hand[0] = dealer.hand[0].with_visibility(True)
        self.reveal()
        self.events.emit_new(
            EventType.DEALER_REVEALS,
            card=dealer.hand[0].code,
            hand_value=dealer.total,
        )
        return True
