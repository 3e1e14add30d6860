class FedTrustError(Exception):
    pass


class FailedInformationRetrieval(FedTrustError):
    pass


class FailedConfigurationRetrieval(FailedInformationRetrieval):
    pass


# Entity statements

class EntityStatementError(FedTrustError):
    pass


class WrongSubject(EntityStatementError):
    pass


class SignatureFailure(EntityStatementError):
    pass


# Trust chains

class TrustChainError(FedTrustError):
    pass


class NotConfiguration(TrustChainError):
    pass


class ExpectedSubordinate(TrustChainError):
    pass


class BrokenLinkage(TrustChainError):
    pass


class Expired(TrustChainError):
    pass


class AlreadyResolved(TrustChainError):
    pass


class InsufficientLength(TrustChainError):
    pass


class NotResolved(TrustChainError):
    pass


class TooShort(TrustChainError):
    pass


class EmptyBag(TrustChainError):
    pass


class InvalidStart(TrustChainError):
    pass


class NoTrustChainResolved(TrustChainError):
    pass


# Metadata policies

class PolicyError(FedTrustError):
    pass


class InvalidPolicyFormat(PolicyError):
    pass


class UnsupportedValueType(PolicyError):
    pass


class UnsupportedCombination(PolicyError):
    pass


class InconsistentOperatorValues(PolicyError):
    pass


class ConflictingValue(PolicyError):
    pass


class EmptyIntersection(PolicyError):
    pass


class InvalidEssentialChange(PolicyError):
    pass


class UnsupportedCriticalOperator(PolicyError):
    pass


class NotOneOf(PolicyError):
    pass


class NotSuperset(PolicyError):
    pass


class MissingEssentialParameter(PolicyError):
    pass
