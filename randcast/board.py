import asyncio
import logging
from collections.abc import Iterable

from randcast.custom_types import BoardPayload, BoardRound, BundledJustification, BundledResponses, BundledShares
from randcast.exceptions import DuplicatePublishError, ProtocolViolationError, RoundIncompleteError

logger = logging.getLogger(__name__)

_ROUND_PAYLOAD_TYPE: dict[BoardRound, type[BoardPayload]] = {
    BoardRound.SHARES: BundledShares,
    BoardRound.RESPONSES: BundledResponses,
    BoardRound.JUSTIFICATIONS: BundledJustification,
}


def _payload_sender(payload: BoardPayload) -> int:
    match payload:
        case BundledShares() | BundledJustification():
            return payload.dealer
        case BundledResponses():
            return payload.share_holder
    raise NotImplementedError("Unknown board payload")


class InMemoryBoard:
    """
    Append-only broadcast board shared by every participant of one DKG run.

    Each round is keyed by sender index. A round can be read once every expected sender
    has published to it, or once it has been closed with the submissions present.
    """

    def __init__(self, senders: Iterable[int]):
        self.senders = frozenset(senders)
        if not self.senders:
            raise ValueError("Board needs at least one expected sender")
        self._payloads: dict[BoardRound, dict[int, BoardPayload]] = {round_: {} for round_ in BoardRound}
        self._closed: set[BoardRound] = set()
        self._complete_events = {round_: asyncio.Event() for round_ in BoardRound}

    def publish(self, round_: BoardRound, sender: int, payload: BoardPayload) -> None:
        if sender not in self.senders:
            raise ProtocolViolationError(f"Sender {sender} is not expected on this board")
        if not isinstance(payload, _ROUND_PAYLOAD_TYPE[round_]):
            raise ProtocolViolationError(f"{type(payload).__name__} can not be published to the {round_} round")
        if _payload_sender(payload) != sender:
            raise ProtocolViolationError(f"Sender {sender} published a payload of {_payload_sender(payload)}")
        if round_ in self._closed:
            raise ProtocolViolationError(f"Round {round_} is closed")

        existing = self._payloads[round_].get(sender)
        if existing is not None:
            if existing == payload:
                logger.debug("Sender %s re-published the same %s payload", sender, round_)
                return
            raise DuplicatePublishError(f"Sender {sender} already published a different {round_} payload")

        self._payloads[round_][sender] = payload
        logger.debug(
            "Sender %s published to %s (%s/%s)", sender, round_, len(self._payloads[round_]), len(self.senders)
        )
        if self.is_complete(round_):
            self._complete_events[round_].set()

    def is_complete(self, round_: BoardRound) -> bool:
        return round_ in self._closed or len(self._payloads[round_]) == len(self.senders)

    def missing(self, round_: BoardRound) -> set[int]:
        return set(self.senders.difference(self._payloads[round_]))

    def read_all(self, round_: BoardRound) -> dict[int, BoardPayload]:
        if not self.is_complete(round_):
            missing = sorted(self.missing(round_))
            raise RoundIncompleteError(f"Round {round_} is missing payloads from senders {missing}")
        return dict(sorted(self._payloads[round_].items()))

    def close_round(self, round_: BoardRound) -> None:
        """Mark the round complete with whatever has been published so far."""
        if round_ in self._closed:
            return
        self._closed.add(round_)
        if missing := self.missing(round_):
            logger.warning("Round %s closed without payloads from senders %s", round_, sorted(missing))
        self._complete_events[round_].set()

    async def wait_for_round(self, round_: BoardRound, timeout: float | None = None) -> dict[int, BoardPayload]:
        """
        Block until the round is complete and return its payloads.
        When the timeout expires the round is closed and the absent senders are treated as faulty.
        """
        if not self.is_complete(round_):
            try:
                await asyncio.wait_for(self._complete_events[round_].wait(), timeout)
            except TimeoutError:
                self.close_round(round_)
        return self.read_all(round_)
