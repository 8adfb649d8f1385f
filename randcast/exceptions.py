class RandcastBaseException(Exception):
    """
    Base exception for Randcast.
    """


class ProtocolViolationError(RandcastBaseException):
    """
    Raised when a participant breaks the rules of the protocol.
    """


class DuplicatePublishError(ProtocolViolationError):
    """
    Raised when a sender publishes a different payload for a board round it already published to.
    """


class RoundIncompleteError(ProtocolViolationError):
    """
    Raised when a board round is read before every expected sender has published to it.
    """


class InvalidGroupError(ProtocolViolationError):
    """
    Raised when a group description can not be used for key generation.
    """


class MalformedShareError(ProtocolViolationError):
    """
    Raised when a secret share is outside of the scalar field.
    """


class DeserializationError(ProtocolViolationError):
    """
    Raised when a hex encoded scalar or curve point can not be decoded.
    """


class QuorumError(RandcastBaseException):
    """
    Raised when fewer contributions than required are available.
    Collecting more contributions and retrying is allowed.
    """


class InsufficientPartialSignaturesError(QuorumError):
    """
    Raised when fewer than threshold distinct partial signatures are supplied for aggregation.
    """


class InsufficientQualifiedDealersError(QuorumError):
    """
    Raised when the DKG qualified set is smaller than the threshold.
    """


class IntegrityError(RandcastBaseException):
    """
    Raised when a round produced a result that must not be trusted.
    The round must be abandoned and restarted with a new epoch.
    """


class DKGResultIncompatibilityError(IntegrityError):
    """
    Raised when DKG results are incompatible between nodes.
    This indicates a critical issue with the distributed key generation process,
    as all nodes must reach the same public key.
    """


class SignatureValidationError(IntegrityError):
    """
    Raised when signature validation fails.
    """


class ControllerError(RandcastBaseException):
    """
    Base exception for controller lookups.
    """


class GroupNotFoundError(ControllerError):
    """
    Raised when a group is unknown or still forming.
    """


class NoPendingTaskError(ControllerError):
    """
    Raised when a task is requested but none is waiting to be emitted.
    """


class NoOutputAvailableError(ControllerError):
    """
    Raised when the randomness output is read before any task was fulfilled.
    """


class TaskNotFoundError(ControllerError):
    """
    Raised when a signature task index is unknown.
    """


class DKGOutputNotFoundError(RandcastBaseException):
    """
    Raised when a node has no stored DKG output for the requested public key.
    """
